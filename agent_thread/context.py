from typing import Any, Literal, Optional

ApprovalStatus = Literal["approved", "rejected", "pending"]


class Context:
    """Per-run value handed to instructions, predicates and tools.

    Carries caller-supplied ``data`` plus approval markers keyed by call id.
    Tool invocations get their own derivative via ``for_call`` so a marker
    set for one call is never visible to another.
    """

    def __init__(self, data: Any = None, namespace: str = "agent_thread"):
        self.namespace = namespace
        self.data = data if data is not None else {}
        self.approvals: dict[str, ApprovalStatus] = {}

    def approve(self, call_id: str) -> None:
        self.approvals[call_id] = "approved"

    def reject(self, call_id: str) -> None:
        self.approvals[call_id] = "rejected"

    def approval(self, call_id: Optional[str]) -> ApprovalStatus:
        if call_id is None:
            return "pending"
        return self.approvals.get(call_id, "pending")

    def for_call(
        self, call_id: str, status: Optional[ApprovalStatus] = None
    ) -> "Context":
        """Derive a context scoped to one tool call.

        ``data`` is shared, approvals are copied.
        """
        ctx = Context(self.data, namespace=self.namespace)
        ctx.approvals = dict(self.approvals)
        if status is not None:
            ctx.approvals[call_id] = status
        return ctx

    def __repr__(self) -> str:
        return f"Context(namespace={self.namespace!r}, data={self.data!r})"
