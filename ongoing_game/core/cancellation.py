"""Cooperative cancellation tokens and the generation controller.

A *generation* is one activation of the orchestrator. It owns two tokens: one
bound to match-history work and one bound to everything else. Starting a new
generation cancels both current tokens before creating fresh ones, so work
from an older generation can always tell it has been superseded.
"""

import itertools
from typing import Callable, List, Optional
import structlog

from .exceptions import TaskAbortedError

logger = structlog.get_logger(__name__)

_token_ids = itertools.count(1)


class CancellationToken:
    """One-shot cancellation flag with callbacks."""

    def __init__(self, name: str = "token"):
        self.id = next(_token_ids)
        self.name = name
        self._cancelled = False
        self._reason: Optional[str] = None
        self._callbacks: List[Callable[["CancellationToken"], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: Optional[str] = None) -> None:
        """Cancel the token and run registered callbacks exactly once."""
        if self._cancelled:
            return

        self._cancelled = True
        self._reason = reason
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback(self)
            except Exception as e:
                logger.warning(
                    "Cancellation callback failed",
                    token=self.name,
                    token_id=self.id,
                    error=str(e),
                )

    def add_callback(self, callback: Callable[["CancellationToken"], None]) -> None:
        """Register a callback; runs immediately if already cancelled."""
        if self._cancelled:
            callback(self)
            return
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[["CancellationToken"], None]) -> None:
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise TaskAbortedError(reason=self._reason)

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"<CancellationToken {self.name}#{self.id} {state}>"


class GenerationController:
    """Owns the current pair of cancellation tokens."""

    def __init__(self):
        self.generation = 0
        self._token: Optional[CancellationToken] = None
        self._mh_token: Optional[CancellationToken] = None

    @property
    def token(self) -> Optional[CancellationToken]:
        """Token for summoner, saved-info, additional-game and timeline work."""
        return self._token

    @property
    def match_history_token(self) -> Optional[CancellationToken]:
        """Token for match-history list requests."""
        return self._mh_token

    @property
    def active(self) -> bool:
        return self._token is not None and not self._token.cancelled

    def cancel_all(self, reason: str = "superseded") -> None:
        """Invalidate both current tokens without creating new ones."""
        if self._token is not None:
            self._token.cancel(reason)
            self._token = None

        if self._mh_token is not None:
            self._mh_token.cancel(reason)
            self._mh_token = None

    def renew(self, reason: str = "superseded") -> int:
        """Start a new generation; both old tokens are cancelled first."""
        self.cancel_all(reason)
        self.generation += 1
        self._token = CancellationToken(f"general-{self.generation}")
        self._mh_token = CancellationToken(f"match-history-{self.generation}")
        logger.debug("Generation started", generation=self.generation)
        return self.generation

    def renew_match_history(self, reason: str = "match history refresh") -> CancellationToken:
        """Replace only the match-history token, keeping the generation."""
        if self._mh_token is not None:
            self._mh_token.cancel(reason)
        self._mh_token = CancellationToken(f"match-history-{self.generation}")
        return self._mh_token

    def is_current(self, token: Optional[CancellationToken]) -> bool:
        """Whether results bound to ``token`` may still be committed."""
        return token is not None and not token.cancelled
