"""
Job Queue — serializes outbound sends for a single conversation.

Every reply/push issued by a context becomes a SendJob on that context's
private DelayableJobQueue, which paces and orders execution.
"""
