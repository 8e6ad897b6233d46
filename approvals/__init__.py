"""
Approvals module.

Ordered multi-step approval of submitted documents: step templates per
document type, the sign/reject state machine, signature embedding into the
current PDF artifact, read-only labels over committed signatures and the
audit/notification side effects.
"""
