from rendercache.application.interfaces import ISecurityContext


class StaticSecurityContext(ISecurityContext):
    """Security posture fixed when the session starts."""

    def __init__(self, restricted: bool = False):
        self._restricted = restricted

    def is_restricted_mode(self) -> bool:
        return self._restricted

    def __repr__(self) -> str:
        return f"StaticSecurityContext(restricted={self._restricted})"
