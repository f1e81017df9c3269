"""Exception hierarchy for the relay."""


class RelayError(Exception):
    """Base class for relay failures."""


class ConversionError(RelayError):
    """Raw bulletin bytes could not be turned into a payload."""


class UnsupportedClassificationError(ConversionError):
    """No converter exists for the file's classification."""


class RecordValidationError(ConversionError):
    """The converted record failed semantic validation."""


class RecordValidationWarning(ConversionError):
    """The converted record raised a validation warning.

    Warnings are as fatal as errors for relaying purposes.
    """


class DeliveryError(RelayError):
    """A single delivery attempt to the sink failed (retryable)."""


class PublishError(RelayError):
    """Delivery failed permanently after the retry budget ran out."""


class WatchError(RelayError):
    """The filesystem watch itself failed; fatal to the process."""
