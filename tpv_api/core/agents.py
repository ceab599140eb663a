"""Static agent-code → phone-number registry.

Consulted by the call initiator (unknown codes are rejected) and by the
webhook reconciler (to route the SMS summary). Injected through
``get_agent_registry`` so tests can substitute their own table.
"""

from typing import Mapping

from tpv_api.core.config import settings


class AgentRegistry:
    """Read-only lookup of agent codes."""

    def __init__(self, mapping: Mapping[str, str]):
        self._mapping = dict(mapping)

    def resolve(self, agent_id: str | None) -> str | None:
        """Return the agent's E.164 phone number, or None if unknown."""
        if not isinstance(agent_id, str) or not agent_id:
            return None
        return self._mapping.get(agent_id)

    def __contains__(self, agent_id: object) -> bool:
        return isinstance(agent_id, str) and agent_id in self._mapping

    def __len__(self) -> int:
        return len(self._mapping)


def get_agent_registry() -> AgentRegistry:
    return AgentRegistry(settings.AGENT_PHONE_NUMBERS)
