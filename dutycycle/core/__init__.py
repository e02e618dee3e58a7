"""
Core value types for the duty-cycle scheduler: samples and the accuracy gate,
configuration, scheduler states, inbound events and the error hierarchy.
"""
