from .alert_state_service import AlertStateService

__all__ = ["AlertStateService"]
