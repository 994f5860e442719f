"""Worktrack services.

Each service function is one use case: it takes a fresh AsyncSession and
the calling Principal, authorizes, mutates, audits and fans out inside a
single transaction.
"""
