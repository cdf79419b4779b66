"""Passes app package.

Prepaid stringing packages ("package passes"). A pass holds a number of
service credits with an expiry date; submissions funded by package
credit debit it through a conditional update and an idempotent
consumption log, so the same application can never be charged twice.
"""
