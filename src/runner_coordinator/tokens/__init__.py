"""Registration token stores."""

from runner_coordinator.tokens.store import (
    EnvTokenStore,
    FileTokenStore,
    RegistrationToken,
    TokenStore,
    create_token_store,
    mask_value,
)

__all__ = [
    "EnvTokenStore",
    "FileTokenStore",
    "RegistrationToken",
    "TokenStore",
    "create_token_store",
    "mask_value",
]
