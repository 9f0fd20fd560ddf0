from .alert_run_service import AlertRunService, build_run_context

__all__ = ["AlertRunService", "build_run_context"]
