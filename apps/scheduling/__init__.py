"""Scheduling app package.

Visit appointment capacity: the configured daily schedule (business
days, holidays, per-date exceptions), the per-bucket committed unit
counters, and the idempotent slot commitments made at submission.
"""
