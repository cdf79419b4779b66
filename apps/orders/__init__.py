"""Orders app package.

Read models for the shop's purchase orders and racket rentals. The
stringing workflow only reads these records (line items, mounting fees,
rental prepaid snapshots); order and rental management live in the
commerce service that owns them.
"""
