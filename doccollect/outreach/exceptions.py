"""
Outreach configuration errors.

These indicate a wiring bug between the static flow/rule catalogs and the
orchestrator. They are raised immediately and never turned into results.
"""


class OutreachConfigError(ValueError):
    """Base class for outreach configuration errors."""


class UnknownFlowError(OutreachConfigError):
    def __init__(self, flow_type: str):
        self.flow_type = flow_type
        super().__init__(f"Flow type {flow_type!r} not found")


class UnknownEscalationActionError(OutreachConfigError):
    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unknown escalation action {action!r}")


class EmptyFlowError(OutreachConfigError):
    def __init__(self, flow_type: str):
        self.flow_type = flow_type
        super().__init__(f"Flow {flow_type!r} has no channels")
