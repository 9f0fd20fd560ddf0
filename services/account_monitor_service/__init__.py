from .account_monitor_service import AccountMonitorService

__all__ = ["AccountMonitorService"]
