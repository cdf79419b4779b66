"""Stringing app package.

String-replacement service applications. A customer turns a purchased
order, a racket rental or a standalone request into an application: a
single draft per order or rental is kept, priced and validated step by
step, and on submission the visit slot and package credit are committed
together with the draft's promotion to ``submitted``.
"""
