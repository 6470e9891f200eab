from __future__ import annotations


class BaziError(Exception):
    """Base class for every failure raised by the bazi pipeline."""

    error_type = "bazi_error"
    status_code = 500


class InvalidInput(BaziError):
    """Request fields are missing or malformed."""

    error_type = "invalid_input"
    status_code = 400


class InvalidChart(BaziError):
    """The pillar set cannot describe a real chart."""

    error_type = "invalid_chart"
    status_code = 422


class MissingTemplate(BaziError):
    """A content coordinate has no authored template."""

    error_type = "missing_template"
    status_code = 500

    def __init__(self, coordinate: tuple):
        self.coordinate = coordinate
        super().__init__(f"No template for {coordinate!r}")


class AdapterFailure(BaziError):
    """The calendar computation failed or returned unusable data."""

    error_type = "adapter_failure"
    status_code = 502
