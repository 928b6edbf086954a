"""Session/authorization context - current actor and capability flags."""

from typing import Any, Callable, Mapping, Optional
from byggout.models.actor import Actor, Capability
from byggout.services import supabase_client
from byggout.utils.errors import ValidationError
from byggout.utils.logging import get_structured_logger, mask_email, mask_user_id

logger = get_structured_logger(__name__)

ADMIN_CLAIM = "is_admin"

SessionListener = Callable[[Optional[Actor]], None]


def _claim(user: Any, name: str) -> Any:
    if isinstance(user, Mapping):
        return user.get(name)
    return getattr(user, name, None)


def _flag_set(metadata: Any, key: str) -> bool:
    if not isinstance(metadata, Mapping):
        return False
    value = metadata.get(key)
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def resolve_capabilities(user: Any) -> frozenset[Capability]:
    """Admin is granted by ``is_admin`` in either app or user metadata."""
    capabilities = set()
    if _flag_set(_claim(user, "app_metadata"), ADMIN_CLAIM) or _flag_set(
        _claim(user, "user_metadata"), ADMIN_CLAIM
    ):
        capabilities.add(Capability.ADMIN)
    return frozenset(capabilities)


def actor_from_user(user: Any) -> Optional[Actor]:
    """Build an Actor from a Supabase auth user (object or dict)."""
    if user is None:
        return None
    return Actor(
        id=str(_claim(user, "id")),
        email=_claim(user, "email"),
        capabilities=resolve_capabilities(user),
    )


class SessionContext:
    """Two-state session: anonymous (``actor is None``) or authenticated.

    Capabilities are resolved once per transition and cached on the Actor.
    The checks are advisory; the store's row-level policies are authoritative.
    """

    def __init__(self, actor: Optional[Actor] = None):
        self.actor: Optional[Actor] = actor
        self._listeners: list[SessionListener] = []
        self._subscription: Any = None

    @property
    def is_authenticated(self) -> bool:
        return self.actor is not None

    @property
    def is_admin(self) -> bool:
        return self.actor is not None and self.actor.is_admin

    def subscribe(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def handle_user(self, user: Any) -> Optional[Actor]:
        """Transition to the state described by an auth user (or None)."""
        previous = self.actor
        self.actor = actor_from_user(user)

        if previous != self.actor:
            logger.info(
                "Session changed",
                authenticated=self.actor is not None,
                user_id=mask_user_id(self.actor.id) if self.actor else None,
                is_admin=self.is_admin
            )
            for listener in list(self._listeners):
                listener(self.actor)
        return self.actor

    async def load(self) -> Optional[Actor]:
        """Restore the current session from the store."""
        user = await supabase_client.get_current_session()
        return self.handle_user(user)

    async def bind(self) -> None:
        """Follow auth transitions reported by the store."""
        self._subscription = await supabase_client.on_session_change(self.handle_user)

    async def sign_in_with_email_link(self, email: str) -> None:
        """Request a magic link; the session flips to authenticated later."""
        email = (email or "").strip()
        if not email:
            raise ValidationError("Email is required", field="email")

        await supabase_client.sign_in_with_email_link(email)
        logger.info("Sign-in link sent", email=mask_email(email))

    async def sign_out(self) -> None:
        await supabase_client.sign_out()
        self.handle_user(None)
