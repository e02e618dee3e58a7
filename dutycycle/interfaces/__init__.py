"""
Protocols for the scheduler's collaborators (sensor driver, lifecycle
notifier, grant host, delegate, hooks) and the shared type aliases.
"""
