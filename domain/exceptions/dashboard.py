class DashboardError(Exception):
    pass


class MissingRateError(DashboardError):
    """Currency has no usable rate in the current rate table."""

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"No exchange rate for {currency}")


class MalformedRecordError(DashboardError):
    """Record lacks a field a KPI needs; the record is skipped."""

    def __init__(self, record_id: str, field_name: str):
        self.record_id = record_id
        self.field_name = field_name
        super().__init__(f"Record {record_id} is missing required field '{field_name}'")


class RecomputationTimeoutError(DashboardError):
    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Dashboard recomputation exceeded {timeout_seconds}s")


class StoreUnavailableError(DashboardError):
    pass


class ProviderError(DashboardError):
    pass
