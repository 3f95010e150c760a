"""Exception types raised by the agent health tools."""


class AgentHealthError(Exception):
    """Base class for agent health failures."""


class ReportNotFoundError(AgentHealthError):
    """The report document does not exist, so there is nothing to check."""

    def __init__(self, path):
        super().__init__(f"Report not found at {path}")
        self.path = path


class InvalidAgentNameError(AgentHealthError, ValueError):
    """Agent names must be usable in a report heading and as a state key."""

    def __init__(self, name: str):
        super().__init__(f"Invalid agent name: {name!r}")
        self.name = name
