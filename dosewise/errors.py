"""Exceptions raised by the dosage and diagnosis engine."""


class DoseWiseError(Exception):
    """Base class for every error raised by dosewise."""


class InputValidationError(DoseWiseError, ValueError):
    """A patient record is malformed (out-of-range value, unknown tag)."""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


class NoTrainingDataError(DoseWiseError):
    """There are no historical dosage records for the requested drug."""

    def __init__(self, drug_name):
        super().__init__(f"No training data for drug '{drug_name}'")
        self.drug_name = drug_name


class ModelUnavailableError(DoseWiseError):
    """A model could neither be loaded nor trained."""


class ExternalServiceError(DoseWiseError):
    """The ledger collaborator raised instead of answering."""
