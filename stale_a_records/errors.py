class AuditError(Exception):
    pass


class ConfigError(AuditError):
    pass


class InventoryError(AuditError):
    """Region listing or a region query failed; the run cannot continue."""


class ZoneListingError(AuditError):
    pass


class ZoneError(AuditError):
    """Failure scoped to one hosted zone. Other zones keep going."""

    def __init__(self, zone_id: str, message: str):
        super().__init__(f"zone {zone_id}: {message}")
        self.zone_id = zone_id


class ZoneExtractionError(ZoneError):
    pass


class PublishError(ZoneError):
    pass
