# Overview: Reading and writing the inventory import workbook (xlsx).

"""
Inventory template format

Sheet 1, row 1 (A1:G1) holds the fixed header below; product rows start at
row 2 and end at the first row with an empty code. Two helper tables listing
the business's categories ("Categorías", from I7) and suppliers
("Proveedores", from L7) are written next to the data block so users can
look up codes; the parser never reads past column G.
"""

from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass
from typing import Any, BinaryIO, Iterable

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..validation import ValidationError

TEMPLATE_HEADERS = (
    "Código",
    "Nombre Producto",
    "Valor",
    "Precio Venta",
    "Stock Inicial",
    "Código Categoría",
    "Código Proveedor",
)

CATEGORY_TABLE_TITLE = "Categorías"
SUPPLIER_TABLE_TITLE = "Proveedores"
CATEGORY_TABLE_ANCHOR = (7, 9)   # I7
SUPPLIER_TABLE_ANCHOR = (7, 12)  # L7

INVALID_TEMPLATE_MESSAGE = "La plantilla cargada no es válida."


class TemplateError(ValidationError):
    """Raised when an uploaded workbook is not an inventory template."""


@dataclass(frozen=True)
class ParsedProductRow:
    """One data row as read from the sheet; values are raw cell contents."""
    row_number: int
    code: str
    name: Any
    cost: Any
    selling_price: Any
    stock: Any
    category_code: Any
    supplier_code: Any

    def to_dict(self) -> dict:
        return {
            "row_number": self.row_number,
            "code": self.code,
            "name": self.name,
            "cost": self.cost,
            "selling_price": self.selling_price,
            "stock": self.stock,
            "category_code": self.category_code,
            "supplier_code": self.supplier_code,
        }


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    # Numeric codes come back from Excel as floats (5 -> 5.0)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _normalize_header(value: Any) -> str:
    return _cell_text(value).casefold()


def is_valid_header(row: Iterable[Any]) -> bool:
    cells = list(row)[: len(TEMPLATE_HEADERS)]
    if len(cells) < len(TEMPLATE_HEADERS):
        return False
    return all(
        _normalize_header(cell) == expected.casefold()
        for cell, expected in zip(cells, TEMPLATE_HEADERS)
    )


def parse_inventory_template(stream: BinaryIO, *, max_rows: int | None = None) -> list[ParsedProductRow]:
    """
    Parse the primary 7-column block of an uploaded template.

    Raises:
        TemplateError: If the file is not a workbook or the header does not match
    """
    try:
        wb = load_workbook(stream, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as exc:
        raise TemplateError(INVALID_TEMPLATE_MESSAGE) from exc

    try:
        sheet = wb.worksheets[0]
        rows = sheet.iter_rows(min_col=1, max_col=len(TEMPLATE_HEADERS), values_only=True)
        header = next(rows, None)
        if header is None or not is_valid_header(header):
            raise TemplateError(INVALID_TEMPLATE_MESSAGE)

        parsed: list[ParsedProductRow] = []
        for row_number, values in enumerate(rows, start=2):
            values = tuple(values) + (None,) * (len(TEMPLATE_HEADERS) - len(values))
            code = _cell_text(values[0])
            if not code:
                break
            if max_rows is not None and len(parsed) >= max_rows:
                raise TemplateError(f"La plantilla supera el máximo de {max_rows} productos.")
            parsed.append(
                ParsedProductRow(
                    row_number=row_number,
                    code=code,
                    name=values[1],
                    cost=values[2],
                    selling_price=values[3],
                    stock=values[4],
                    category_code=values[5],
                    supplier_code=values[6],
                )
            )
        return parsed
    finally:
        wb.close()


def _write_helper_table(sheet, anchor: tuple[int, int], title: str, rows: Iterable[tuple[Any, Any]]) -> None:
    row, col = anchor
    sheet.cell(row=row, column=col, value=title)
    sheet.cell(row=row + 1, column=col, value="Código")
    sheet.cell(row=row + 1, column=col + 1, value="Nombre")
    for offset, (code, name) in enumerate(rows, start=2):
        sheet.cell(row=row + offset, column=col, value=code)
        sheet.cell(row=row + offset, column=col + 1, value=name)


def generate_inventory_template(categories: Iterable, suppliers: Iterable) -> bytes:
    """Build an empty template listing the business's category and supplier codes."""
    wb = Workbook()
    sheet = wb.active
    sheet.title = "Inventario"
    sheet.append(list(TEMPLATE_HEADERS))

    _write_helper_table(
        sheet,
        CATEGORY_TABLE_ANCHOR,
        CATEGORY_TABLE_TITLE,
        ((c.code, c.description) for c in categories),
    )
    _write_helper_table(
        sheet,
        SUPPLIER_TABLE_ANCHOR,
        SUPPLIER_TABLE_TITLE,
        ((s.code, s.fantasy_name) for s in suppliers),
    )

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
