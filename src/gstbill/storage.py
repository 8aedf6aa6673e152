"""SQLite storage for the catalog, parties, company profile and invoices.

:class:`SQLiteStore` is the :class:`~gstbill.invoices.InvoiceGateway` used
by the application. Writes run inside a single transaction each; any
``sqlite3`` failure is re-raised as :class:`~gstbill.errors.GatewayError`
after the transaction has been rolled back.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import fields, replace
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterable, Iterator, Mapping

from .calculator import ComputedLine, InvoiceTotals
from .catalog import Product, validate_product
from .config import AppConfig
from .errors import GatewayError
from .invoices import (
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    format_invoice_number,
    parse_invoice_sequence,
)
from .parties import Party, validate_party
from .settings import DEFAULT_PROFILE, CompanyProfile

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS products (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    batch TEXT DEFAULT '',
    expiry TEXT DEFAULT '',
    hsn TEXT DEFAULT '',
    gst_rate TEXT NOT NULL,
    mrp TEXT NOT NULL DEFAULT '0',
    purchase_rate TEXT NOT NULL DEFAULT '0',
    sale_rate TEXT NOT NULL DEFAULT '0',
    stock INTEGER NOT NULL DEFAULT 0 CHECK (stock >= 0),
    manufacturer TEXT DEFAULT ''
);

CREATE TABLE IF NOT EXISTS parties (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    gstin TEXT DEFAULT '',
    address TEXT DEFAULT '',
    phone TEXT DEFAULT '',
    email TEXT DEFAULT '',
    dl_no TEXT DEFAULT ''
);

CREATE TABLE IF NOT EXISTS settings (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    company_name TEXT NOT NULL,
    address_line1 TEXT DEFAULT '',
    address_line2 TEXT DEFAULT '',
    gstin TEXT DEFAULT '',
    dl_no1 TEXT DEFAULT '',
    dl_no2 TEXT DEFAULT '',
    phone TEXT DEFAULT '',
    email TEXT DEFAULT '',
    terms TEXT DEFAULT ''
);

CREATE TABLE IF NOT EXISTS invoices (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_no TEXT NOT NULL UNIQUE,
    date TEXT NOT NULL,
    party_id INTEGER NOT NULL,
    party_name TEXT NOT NULL,
    party_gstin TEXT DEFAULT '',
    party_address TEXT DEFAULT '',
    total_taxable TEXT NOT NULL,
    total_cgst TEXT NOT NULL,
    total_sgst TEXT NOT NULL,
    total_igst TEXT NOT NULL,
    grand_total TEXT NOT NULL,
    round_off TEXT NOT NULL DEFAULT '0',
    status TEXT NOT NULL DEFAULT 'PAID',
    notes TEXT DEFAULT '',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS invoice_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_id INTEGER NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    product_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    batch TEXT DEFAULT '',
    expiry TEXT DEFAULT '',
    hsn TEXT DEFAULT '',
    mrp TEXT NOT NULL DEFAULT '0',
    unit_price TEXT NOT NULL,
    quantity INTEGER NOT NULL,
    discount_percent TEXT NOT NULL,
    gst_rate TEXT NOT NULL,
    intra_jurisdiction INTEGER NOT NULL,
    base_amount TEXT NOT NULL,
    discount_amount TEXT NOT NULL,
    taxable_value TEXT NOT NULL,
    cgst TEXT NOT NULL,
    sgst TEXT NOT NULL,
    igst TEXT NOT NULL,
    line_total TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_products_name ON products(name);
CREATE INDEX IF NOT EXISTS idx_products_hsn ON products(hsn);
CREATE INDEX IF NOT EXISTS idx_products_batch ON products(batch);
CREATE INDEX IF NOT EXISTS idx_parties_name ON parties(name);
CREATE INDEX IF NOT EXISTS idx_parties_gstin ON parties(gstin);
CREATE INDEX IF NOT EXISTS idx_invoices_date ON invoices(date);
CREATE INDEX IF NOT EXISTS idx_invoices_party ON invoices(party_id);
CREATE INDEX IF NOT EXISTS idx_items_invoice ON invoice_items(invoice_id);
"""

_PROFILE_COLUMNS = tuple(f.name for f in fields(CompanyProfile))


class SQLiteStore:
    """Local database holding every table of the application."""

    def __init__(
        self,
        path: str | Path = ":memory:",
        *,
        invoice_prefix: str = "GD",
        clock: Callable[[], date] = date.today,
    ) -> None:
        if str(path) != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self.path = path
        self.invoice_prefix = invoice_prefix
        self._clock = clock
        self._conn = sqlite3.connect(str(path))
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(SCHEMA)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SQLiteStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            with self._conn:
                yield self._conn
        except sqlite3.IntegrityError as exc:
            raise GatewayError(
                f"Constraint violation: {exc}", code="CONSTRAINT_VIOLATION"
            ) from exc
        except sqlite3.Error as exc:
            raise GatewayError(f"Storage unavailable: {exc}") from exc

    # -- products -------------------------------------------------------------

    def add_product(self, product: Product) -> Product:
        return self.bulk_add_products([product])[0]

    def bulk_add_products(self, products: Iterable[Product]) -> list[Product]:
        """Insert ``products`` in one transaction and return them with ids."""

        validated = [validate_product(product) for product in products]
        stored: list[Product] = []
        with self._transaction() as conn:
            for product in validated:
                cursor = conn.execute(
                    "INSERT INTO products (name, batch, expiry, hsn, gst_rate, mrp,"
                    " purchase_rate, sale_rate, stock, manufacturer)"
                    " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    _product_params(product),
                )
                stored.append(replace(product, id=cursor.lastrowid))
        logger.info("Added %d products", len(stored))
        return stored

    def update_product(self, product: Product) -> Product:
        if product.id is None:
            raise GatewayError("Cannot update a product without id.", code="NOT_FOUND")
        product = validate_product(product)
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE products SET name = ?, batch = ?, expiry = ?, hsn = ?, gst_rate = ?,"
                " mrp = ?, purchase_rate = ?, sale_rate = ?, stock = ?, manufacturer = ?"
                " WHERE id = ?",
                (*_product_params(product), product.id),
            )
            if cursor.rowcount != 1:
                raise GatewayError(f"Product {product.id} not found.", code="NOT_FOUND")
        return product

    def delete_product(self, product_id: int) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM products WHERE id = ?", (product_id,))

    def get_product(self, product_id: int) -> Product | None:
        row = self._conn.execute("SELECT * FROM products WHERE id = ?", (product_id,)).fetchone()
        return _row_to_product(row) if row is not None else None

    def lookup_catalog_item(self, product_id: int) -> Product | None:
        return self.get_product(product_id)

    def list_products(self) -> list[Product]:
        rows = self._conn.execute("SELECT * FROM products ORDER BY name, id").fetchall()
        return [_row_to_product(row) for row in rows]

    def count_products(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM products").fetchone()[0]

    # -- parties --------------------------------------------------------------

    def add_party(self, party: Party) -> Party:
        return self.bulk_add_parties([party])[0]

    def bulk_add_parties(self, parties: Iterable[Party]) -> list[Party]:
        validated = [validate_party(party) for party in parties]
        stored: list[Party] = []
        with self._transaction() as conn:
            for party in validated:
                cursor = conn.execute(
                    "INSERT INTO parties (name, gstin, address, phone, email, dl_no)"
                    " VALUES (?, ?, ?, ?, ?, ?)",
                    (party.name, party.gstin, party.address, party.phone, party.email, party.dl_no),
                )
                stored.append(replace(party, id=cursor.lastrowid))
        logger.info("Added %d parties", len(stored))
        return stored

    def update_party(self, party: Party) -> Party:
        if party.id is None:
            raise GatewayError("Cannot update a party without id.", code="NOT_FOUND")
        party = validate_party(party)
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE parties SET name = ?, gstin = ?, address = ?, phone = ?, email = ?,"
                " dl_no = ? WHERE id = ?",
                (party.name, party.gstin, party.address, party.phone, party.email, party.dl_no, party.id),
            )
            if cursor.rowcount != 1:
                raise GatewayError(f"Party {party.id} not found.", code="NOT_FOUND")
        return party

    def delete_party(self, party_id: int) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM parties WHERE id = ?", (party_id,))

    def get_party(self, party_id: int) -> Party | None:
        row = self._conn.execute("SELECT * FROM parties WHERE id = ?", (party_id,)).fetchone()
        return _row_to_party(row) if row is not None else None

    def list_parties(self) -> list[Party]:
        rows = self._conn.execute("SELECT * FROM parties ORDER BY name, id").fetchall()
        return [_row_to_party(row) for row in rows]

    def count_parties(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM parties").fetchone()[0]

    # -- company profile ------------------------------------------------------

    def load_profile(self) -> CompanyProfile | None:
        row = self._conn.execute("SELECT * FROM settings WHERE id = 1").fetchone()
        if row is None:
            return None
        return CompanyProfile(**{name: row[name] or "" for name in _PROFILE_COLUMNS})

    def save_profile(self, profile: CompanyProfile) -> None:
        columns = ", ".join(_PROFILE_COLUMNS)
        placeholders = ", ".join("?" for _ in _PROFILE_COLUMNS)
        with self._transaction() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO settings (id, {columns}) VALUES (1, {placeholders})",
                tuple(getattr(profile, name) for name in _PROFILE_COLUMNS),
            )

    # -- invoices -------------------------------------------------------------

    def next_invoice_number(self) -> str:
        """Return the next number in the current year's sequence.

        The sequence continues from the highest stored number, so deleting
        or cancelling an invoice never reuses a number.
        """

        year = self._clock().year
        stem = f"{self.invoice_prefix}/{year}/"
        rows = self._conn.execute(
            "SELECT invoice_no FROM invoices WHERE substr(invoice_no, 1, ?) = ?",
            (len(stem), stem),
        ).fetchall()
        sequences = [parse_invoice_sequence(row["invoice_no"]) for row in rows]
        last = max((seq for seq in sequences if seq is not None), default=0)
        return format_invoice_number(self.invoice_prefix, year, last + 1)

    def commit_invoice(self, invoice: Invoice, stock_decrements: Mapping[int, int]) -> Invoice:
        """Insert ``invoice`` and decrement stock in a single transaction.

        Raises :class:`GatewayError` (and changes nothing) if the number is
        already used, a product is missing, or stock would go negative.
        """

        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO invoices (invoice_no, date, party_id, party_name, party_gstin,"
                " party_address, total_taxable, total_cgst, total_sgst, total_igst,"
                " grand_total, round_off, status, notes)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    invoice.invoice_no,
                    invoice.date.isoformat(),
                    invoice.party_id,
                    invoice.party_name,
                    invoice.party_gstin,
                    invoice.party_address,
                    str(invoice.totals.total_taxable),
                    str(invoice.totals.total_split_a),
                    str(invoice.totals.total_split_b),
                    str(invoice.totals.total_inter_jurisdiction),
                    str(invoice.totals.grand_total),
                    str(invoice.round_off),
                    invoice.status.value,
                    invoice.notes,
                ),
            )
            invoice_id = cursor.lastrowid
            for position, item in enumerate(invoice.items):
                _insert_item(conn, invoice_id, position, item)

            for product_id, quantity in stock_decrements.items():
                cursor = conn.execute(
                    "UPDATE products SET stock = stock - ? WHERE id = ? AND stock >= ?",
                    (quantity, product_id, quantity),
                )
                if cursor.rowcount == 1:
                    continue
                exists = conn.execute(
                    "SELECT stock FROM products WHERE id = ?", (product_id,)
                ).fetchone()
                if exists is None:
                    raise GatewayError(
                        f"Product {product_id} no longer exists.",
                        code="UNKNOWN_PRODUCT",
                        details={"product_id": str(product_id)},
                    )
                raise GatewayError(
                    f"Insufficient stock for product {product_id}: "
                    f"{exists['stock']} available, {quantity} requested.",
                    code="INSUFFICIENT_STOCK",
                    details={"product_id": str(product_id)},
                )

        logger.info("Committed invoice %s (id %s)", invoice.invoice_no, invoice_id)
        return replace(invoice, id=invoice_id)

    def cancel_invoice(self, invoice_no: str) -> Invoice:
        """Mark ``invoice_no`` cancelled and return its stock to the catalog."""

        invoice = self.get_invoice(invoice_no)
        if invoice is None:
            raise GatewayError(f"Invoice {invoice_no} not found.", code="NOT_FOUND")
        if invoice.status is InvoiceStatus.CANCELLED:
            raise GatewayError(
                f"Invoice {invoice_no} is already cancelled.", code="ALREADY_CANCELLED"
            )

        with self._transaction() as conn:
            conn.execute(
                "UPDATE invoices SET status = ? WHERE id = ?",
                (InvoiceStatus.CANCELLED.value, invoice.id),
            )
            for product_id, quantity in invoice.stock_decrements().items():
                cursor = conn.execute(
                    "UPDATE products SET stock = stock + ? WHERE id = ?",
                    (quantity, product_id),
                )
                if cursor.rowcount != 1:
                    logger.warning(
                        "Product %s from invoice %s no longer exists; stock not restored",
                        product_id,
                        invoice_no,
                    )
        logger.info("Cancelled invoice %s", invoice_no)
        return replace(invoice, status=InvoiceStatus.CANCELLED)

    def get_invoice(self, invoice_no: str) -> Invoice | None:
        row = self._conn.execute(
            "SELECT * FROM invoices WHERE invoice_no = ?", (invoice_no,)
        ).fetchone()
        return self._row_to_invoice(row) if row is not None else None

    def list_invoices(
        self,
        *,
        start: date | None = None,
        end: date | None = None,
        include_cancelled: bool = True,
    ) -> list[Invoice]:
        """Return invoices dated within ``[start, end]`` ordered by date."""

        clauses: list[str] = []
        params: list[object] = []
        if start is not None:
            clauses.append("date >= ?")
            params.append(start.isoformat())
        if end is not None:
            clauses.append("date <= ?")
            params.append(end.isoformat())
        if not include_cancelled:
            clauses.append("status != ?")
            params.append(InvoiceStatus.CANCELLED.value)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._conn.execute(
            f"SELECT * FROM invoices{where} ORDER BY date, id", params
        ).fetchall()
        return [self._row_to_invoice(row) for row in rows]

    def count_invoices(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM invoices").fetchone()[0]

    def _row_to_invoice(self, row: sqlite3.Row) -> Invoice:
        item_rows = self._conn.execute(
            "SELECT * FROM invoice_items WHERE invoice_id = ? ORDER BY position",
            (row["id"],),
        ).fetchall()
        return Invoice(
            invoice_no=row["invoice_no"],
            date=date.fromisoformat(row["date"]),
            party_id=row["party_id"],
            party_name=row["party_name"],
            party_gstin=row["party_gstin"] or "",
            party_address=row["party_address"] or "",
            items=tuple(_row_to_item(item) for item in item_rows),
            totals=InvoiceTotals(
                total_taxable=Decimal(row["total_taxable"]),
                total_split_a=Decimal(row["total_cgst"]),
                total_split_b=Decimal(row["total_sgst"]),
                total_inter_jurisdiction=Decimal(row["total_igst"]),
                grand_total=Decimal(row["grand_total"]),
            ),
            round_off=Decimal(row["round_off"]),
            status=InvoiceStatus(row["status"]),
            notes=row["notes"] or "",
            id=row["id"],
        )


def open_store(config: AppConfig, *, clock: Callable[[], date] = date.today) -> SQLiteStore:
    """Open the database configured in ``config``."""

    return SQLiteStore(config.db_file, invoice_prefix=config.invoice_prefix, clock=clock)


SAMPLE_PRODUCTS: tuple[Product, ...] = (
    Product("Paracetamol 500mg", "B123", "2026-12-31", "3004", Decimal("12"), Decimal("20"),
            Decimal("10"), Decimal("15"), 1000, "Cipla"),
    Product("Azithromycin 500mg", "AZ09", "2025-10-20", "3004", Decimal("12"), Decimal("120"),
            Decimal("80"), Decimal("100"), 500, "Sun Pharma"),
    Product("Vitamin C Chewable", "VC99", "2026-05-15", "3004", Decimal("5"), Decimal("50"),
            Decimal("25"), Decimal("35"), 200, "Abbott"),
)

SAMPLE_PARTIES: tuple[Party, ...] = (
    Party("City Medical Store", "27ABCDE1234F1Z5", "123 Main St, Mumbai", "9876543210",
          dl_no="MH-MZ1-123456"),
    Party("Wellness Pharmacy", "27FGHIJ5678K1Z9", "456 High St, Pune", "9123456789",
          dl_no="MH-PZ1-654321"),
)


def seed_database(store: SQLiteStore) -> bool:
    """Populate empty tables with sample data. Returns ``True`` if anything was added."""

    seeded = False
    if store.count_products() == 0:
        store.bulk_add_products(SAMPLE_PRODUCTS)
        seeded = True
    if store.count_parties() == 0:
        store.bulk_add_parties(SAMPLE_PARTIES)
        seeded = True
    if store.load_profile() is None:
        store.save_profile(DEFAULT_PROFILE)
        seeded = True
    return seeded


def _product_params(product: Product) -> tuple[object, ...]:
    return (
        product.name,
        product.batch,
        product.expiry,
        product.hsn,
        str(product.gst_rate),
        str(product.mrp),
        str(product.purchase_rate),
        str(product.sale_rate),
        product.stock,
        product.manufacturer,
    )


def _insert_item(conn: sqlite3.Connection, invoice_id: int, position: int, item: InvoiceItem) -> None:
    line = item.computed
    conn.execute(
        "INSERT INTO invoice_items (invoice_id, position, product_id, name, batch, expiry,"
        " hsn, mrp, unit_price, quantity, discount_percent, gst_rate, intra_jurisdiction,"
        " base_amount, discount_amount, taxable_value, cgst, sgst, igst, line_total)"
        " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            invoice_id,
            position,
            item.product_id,
            item.name,
            item.batch,
            item.expiry,
            item.hsn,
            str(item.mrp),
            str(line.unit_price),
            line.quantity,
            str(line.discount_percent),
            str(line.tax_rate_percent),
            int(line.intra_jurisdiction),
            str(line.base_amount),
            str(line.discount_amount),
            str(line.taxable_value),
            str(line.tax_split_a),
            str(line.tax_split_b),
            str(line.inter_jurisdiction_tax),
            str(line.line_total),
        ),
    )


def _row_to_product(row: sqlite3.Row) -> Product:
    return Product(
        name=row["name"],
        batch=row["batch"] or "",
        expiry=row["expiry"] or "",
        hsn=row["hsn"] or "",
        gst_rate=Decimal(row["gst_rate"]),
        mrp=Decimal(row["mrp"]),
        purchase_rate=Decimal(row["purchase_rate"]),
        sale_rate=Decimal(row["sale_rate"]),
        stock=row["stock"],
        manufacturer=row["manufacturer"] or "",
        id=row["id"],
    )


def _row_to_party(row: sqlite3.Row) -> Party:
    return Party(
        name=row["name"],
        gstin=row["gstin"] or "",
        address=row["address"] or "",
        phone=row["phone"] or "",
        email=row["email"] or "",
        dl_no=row["dl_no"] or "",
        id=row["id"],
    )


def _row_to_item(row: sqlite3.Row) -> InvoiceItem:
    return InvoiceItem(
        product_id=row["product_id"],
        name=row["name"],
        batch=row["batch"] or "",
        expiry=row["expiry"] or "",
        hsn=row["hsn"] or "",
        mrp=Decimal(row["mrp"]),
        computed=ComputedLine(
            unit_price=Decimal(row["unit_price"]),
            quantity=row["quantity"],
            discount_percent=Decimal(row["discount_percent"]),
            tax_rate_percent=Decimal(row["gst_rate"]),
            intra_jurisdiction=bool(row["intra_jurisdiction"]),
            base_amount=Decimal(row["base_amount"]),
            discount_amount=Decimal(row["discount_amount"]),
            taxable_value=Decimal(row["taxable_value"]),
            tax_split_a=Decimal(row["cgst"]),
            tax_split_b=Decimal(row["sgst"]),
            inter_jurisdiction_tax=Decimal(row["igst"]),
            line_total=Decimal(row["line_total"]),
        ),
    )


__all__ = ["SAMPLE_PARTIES", "SAMPLE_PRODUCTS", "SCHEMA", "SQLiteStore", "open_store", "seed_database"]
