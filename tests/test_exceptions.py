from agent_thread.exceptions import (
    AgentThreadError,
    ApprovalError,
    HostedToolError,
    MaxTicksExceeded,
    ModelBehaviorError,
    ModelCallError,
    ThreadCancelled,
    ToolExecutionError,
    ToolNotFound,
    ToolValidationError,
)


class TestExceptionHierarchy:
    def test_all_exceptions_inherit_from_agent_thread_error(self):
        for exc_class in [
            ModelCallError,
            ModelBehaviorError,
            HostedToolError,
            MaxTicksExceeded,
            ThreadCancelled,
            ApprovalError,
            ToolValidationError,
            ToolNotFound,
            ToolExecutionError,
        ]:
            assert issubclass(exc_class, AgentThreadError)

    def test_agent_thread_error_inherits_from_exception(self):
        assert issubclass(AgentThreadError, Exception)

    def test_exceptions_carry_message(self):
        err = ToolNotFound("missing_tool")
        assert str(err) == "missing_tool"
