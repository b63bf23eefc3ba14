"""Business session manager - switching between a user's businesses"""

import json
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Depends

from ...auth import AuthenticatedUser, get_current_user
from .context import BusinessContextManager, ContextResult, get_business_context

logger = logging.getLogger(__name__)

SWITCH_HISTORY_KEY = "business_switches"
SESSION_STARTED_KEY = "session_started_at"
MAX_SWITCH_HISTORY = 10

SwitchListener = Callable[[dict], None]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BusinessSessionManager:
    """
    Session-level view over the business context for one user: which
    businesses are available, switching between them, and a short history
    of recent switches.
    """

    def __init__(self, context: BusinessContextManager, user_id: str):
        self.context = context
        self.user_id = user_id
        self._switch_listeners: list[SwitchListener] = []

    @property
    def storage(self):
        return self.context.storage

    def initialize_session(self) -> dict:
        """Record the session start and make sure the stored context is still valid"""
        try:
            if not self.storage.get(SESSION_STARTED_KEY):
                self.storage.set(SESSION_STARTED_KEY, _now().isoformat())
        except Exception as e:
            logger.warning(f"⚠️ Could not record session start for {self.user_id}: {e}")

        validation = self.validate_session()
        if not validation["valid"]:
            self.context.ensure_business_context(self.user_id)
        return self.get_session_stats()

    def get_available_businesses(self) -> list:
        return self.context.get_user_businesses(self.user_id)

    def get_current_business(self):
        business_id = self.context.get_current_business_id()
        if not business_id:
            return None
        for business in self.get_available_businesses():
            if business.id == business_id:
                return business
        return None

    def can_switch_to_business(self, business_id: str) -> bool:
        return self.context.validate_business_ownership(self.user_id, business_id)

    def switch_to_business(self, business_id: str, reason: str = "user_selection") -> ContextResult:
        previous = self.context.get_current_business_id()
        result = self.context.switch_business_context(self.user_id, business_id)
        if not result.success or previous == business_id:
            return result

        event = {
            "from_business_id": previous,
            "to_business_id": business_id,
            "switched_at": _now().isoformat(),
            "reason": reason,
        }
        self._record_switch(event)
        logger.info(f"🔄 User {self.user_id} switched business {previous} -> {business_id} ({reason})")

        for listener in list(self._switch_listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"❌ Business switch listener failed: {e}")
        return result

    def _record_switch(self, event: dict) -> None:
        history = self.get_switch_history()
        history.append(event)
        try:
            self.storage.set(SWITCH_HISTORY_KEY, json.dumps(history[-MAX_SWITCH_HISTORY:]))
        except Exception as e:
            logger.warning(f"⚠️ Could not save business switch history: {e}")

    def get_switch_history(self) -> list[dict]:
        """Most recent switches, oldest first"""
        try:
            raw = self.storage.get(SWITCH_HISTORY_KEY)
        except Exception as e:
            logger.warning(f"⚠️ Could not read business switch history: {e}")
            return []
        if not raw:
            return []
        try:
            history = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("⚠️ Corrupt business switch history, discarding")
            return []
        return history if isinstance(history, list) else []

    def validate_session(self) -> dict:
        """Check the stored business still belongs to the user; clear it if not"""
        business_id = self.context.get_current_business_id()
        if business_id is None:
            return {"valid": False, "business_id": None, "reason": "no_context"}

        if not self.context.validate_business_ownership(self.user_id, business_id):
            logger.warning(f"⚠️ Stored business {business_id} no longer owned by {self.user_id}, clearing")
            self.context.clear_business_context()
            return {"valid": False, "business_id": None, "reason": "ownership_revoked"}

        return {"valid": True, "business_id": business_id, "reason": None}

    def clear_session(self) -> ContextResult:
        result = self.context.clear_business_context()
        for key in (SWITCH_HISTORY_KEY, SESSION_STARTED_KEY):
            try:
                self.storage.remove(key)
            except Exception as e:
                logger.warning(f"⚠️ Could not clear {key}: {e}")
        return result

    def get_session_stats(self) -> dict:
        history = self.get_switch_history()
        try:
            started = self.storage.get(SESSION_STARTED_KEY)
        except Exception as e:
            logger.warning(f"⚠️ Could not read session start: {e}")
            started = None

        duration: Optional[int] = None
        if started:
            try:
                duration = int((_now() - datetime.fromisoformat(started)).total_seconds())
            except ValueError:
                duration = None

        return {
            "current_business_id": self.context.get_current_business_id(),
            "available_businesses": len(self.get_available_businesses()),
            "switch_count": len(history),
            "last_switch_time": history[-1]["switched_at"] if history else None,
            "session_start_time": started,
            "session_duration_seconds": duration,
        }

    def add_switch_listener(self, listener: SwitchListener) -> Callable[[], None]:
        self._switch_listeners.append(listener)

        def unsubscribe():
            if listener in self._switch_listeners:
                self._switch_listeners.remove(listener)

        return unsubscribe


def get_session_manager(
    context: BusinessContextManager = Depends(get_business_context),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> BusinessSessionManager:
    """Dependency injection for BusinessSessionManager"""
    return BusinessSessionManager(context, current_user.uid)
