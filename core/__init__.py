"""
Core layer shared by the feature packages.

Provides layered configuration, the SQLite repository base, the audit logger,
the actor model and the common error hierarchy.
"""
