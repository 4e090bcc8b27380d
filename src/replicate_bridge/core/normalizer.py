"""Map a prediction's output variant onto an ordered list of image references."""

from __future__ import annotations

from collections.abc import Sequence

from replicate_bridge.core.jobs import Job, JobOutput, ManyOutput, NoOutput, SingleOutput


def normalize(source: Job | JobOutput | str | Sequence[str]) -> list[str]:
    """Return the image references of *source* in output order.

    - ``SingleOutput`` -> one-element list (empty if the string is empty).
    - ``ManyOutput`` -> same order, keeping only non-empty strings.
    - ``NoOutput`` -> empty list.  The job still succeeded; callers report
      an empty image list rather than an error.

    A bare string is treated like ``SingleOutput``.  A plain list (an
    already-normalized result) is accepted too, which makes
    ``normalize(normalize(x)) == normalize(x)``.
    """
    output = source.output if isinstance(source, Job) else source
    if isinstance(output, str):
        output = SingleOutput(output)
    elif isinstance(output, (list, tuple)):
        output = ManyOutput(tuple(output))

    match output:
        case SingleOutput(value=value):
            return [value] if value else []
        case ManyOutput(values=values):
            return [item for item in values if isinstance(item, str) and item]
        case NoOutput():
            return []
        case _:
            raise TypeError(f"unsupported output variant: {output!r}")
