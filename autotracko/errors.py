from __future__ import annotations


class TrackerRegistryError(Exception):
    """The tracker registry could not be read, parsed or validated."""


class DomainListError(Exception):
    """The list of sites to scan is missing or has no usable entries."""


class ResultFormatError(ValueError):
    """A persisted scan result / dataset record does not have the expected shape."""


class AnalyticsError(Exception):
    """Analytics cannot be produced from the given dataset."""
