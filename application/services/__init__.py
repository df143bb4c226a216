from .dashboard_service import DashboardService
from .rate_refresh import RateRefreshService
from .scheduler import RecomputeScheduler, SchedulerState
from .snapshot_builder import build_snapshot

__all__ = ['DashboardService', 'RateRefreshService', 'RecomputeScheduler', 'SchedulerState', 'build_snapshot']
