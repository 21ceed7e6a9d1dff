"""The single exception type raised by stage contracts."""


class ContractViolation(RuntimeError):
    """A stage boundary saw data it was promised would never occur.

    Raised for malformed grid specs handed in by a caller and for
    datasets or region tables that a pipeline stage produced incorrectly.
    User configuration mistakes surface earlier, as pydantic
    ``ValidationError`` during ``resolve_config``.
    """
