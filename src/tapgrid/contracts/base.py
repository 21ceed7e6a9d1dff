"""The ``require`` primitive every contract is written with."""

from tapgrid.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Raise ContractViolation with ``message`` unless ``condition`` holds.

    Contracts never repair or default anything: a failed check stops the
    request that triggered it.

    Examples
    --------
    >>> require(spec.min_lat < spec.max_lat, "Grid contract violated: empty latitude span")
    >>> require("winner" in ds.data_vars, "Dominance contract violated: 'winner' not found")
    """
    if not condition:
        raise ContractViolation(message)
