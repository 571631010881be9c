"""Plain-text rendering of sparse association matrices, for debugging.

Layout::

    <12 blanks>\\t<col id>\\t<col id> ...
    <blank line>
    <row id>\\t<value>\\t<value> ...
    ...
    <blank line>

Every cell is right-aligned in a 12-character field and cut to its first 12
characters when longer. Non-negative values carry a leading space so they line
up with negative ones. Entries that were never stored render as a blank cell,
which keeps them distinguishable from a stored 0.0.

Output size grows with rows x distinct columns; not meant for wide matrices.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

import numpy as np

if TYPE_CHECKING:
    from .sparse import SparseAssociationMatrix

PRINT_COLUMN_WIDTH: Final[int] = 12


def _cell(text: str) -> str:
    return text[:PRINT_COLUMN_WIDTH].rjust(PRINT_COLUMN_WIDTH)


def _value_cell(value: float) -> str:
    text = str(np.float32(value))
    if value >= 0.0:
        text = " " + text
    return _cell(text)


def render(matrix: SparseAssociationMatrix) -> str:
    """
    Render ``matrix`` as a tab-delimited, fixed-width table.

    Args:
        matrix: Sparse matrix to print.

    Returns:
        The table text, ending in a blank line.
    """
    column_ids = [int(c) for c in matrix.column_ids()]
    blank = _cell("")

    lines = ["\t".join([blank, *(_cell(str(c)) for c in column_ids)]), ""]
    for row_id in matrix.row_ids():
        row = matrix.row(int(row_id))
        cells = [_cell(str(row_id))]
        for column_id in column_ids:
            value = row.get(column_id)
            cells.append(blank if value is None else _value_cell(value))
        lines.append("\t".join(cells))

    return "\n".join(lines) + "\n\n"
