"""Server-side quote PDF generation.

A quote is first frozen into a QuoteSnapshot, turned into HTML, and handed to
a render backend (WeasyPrint by default) that converts HTML to PDF bytes.

Each conversion runs in its own child process (see render_worker). At most
``max_workers`` run at once, and a conversion that outlives the timeout is
killed, so a stuck render never holds a slot.

The HTML contains no generation timestamp: the same snapshot always produces
the same document.
"""

import asyncio
import html
import logging
import os
import sys
from datetime import date
from typing import Optional

from quoteflow.exceptions import RenderFailureError, RenderTimeoutError
from quoteflow.schemas.quote import (
    BusinessInfo,
    BusinessProfile,
    ClientInfo,
    QuoteLineItem,
    QuoteSnapshot,
)
from quoteflow.services.render_worker import DEFAULT_BACKEND
from quoteflow.services.totals import compute_totals

logger = logging.getLogger(__name__)

WORKER_MODULE = "quoteflow.services.render_worker"


class RenderBackendError(Exception):
    """The render worker exited with an error."""


def snapshot_from_quote(quote, profile: Optional[BusinessProfile] = None) -> QuoteSnapshot:
    """Freeze a Quote row into the value the renderer works from.

    Document language and direction come from the business profile.
    """
    profile = profile or BusinessProfile()
    totals = compute_totals(
        quote.items or [],
        discount=quote.discount,
        discount_type=quote.discount_type,
        include_vat=quote.include_vat,
        vat_rate=quote.vat_rate,
    )
    return QuoteSnapshot(
        quote_number=quote.quote_number,
        version=quote.version or 1,
        title=quote.title,
        business_info=BusinessInfo(**(quote.business_info or {})),
        client_info=ClientInfo(**(quote.client_info or {})),
        items=tuple(QuoteLineItem(**item) for item in totals.items),
        discount=quote.discount,
        discount_type=quote.discount_type,
        discount_amount=totals.discount_amount,
        include_vat=quote.include_vat,
        vat_rate=quote.vat_rate,
        subtotal=totals.subtotal,
        vat_amount=totals.vat_amount,
        total=totals.total,
        notes=quote.notes,
        terms=quote.terms,
        valid_until=quote.valid_until,
        issued_on=quote.created_at.date(),
        language=profile.language,
        direction=profile.direction,
    )


def _e(value) -> str:
    """Escape free text for embedding in the document."""
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def _multiline(value) -> str:
    return _e(value).replace("\r\n", "\n").replace("\n", "<br>")


def format_currency(value: float, symbol: str = "₪") -> str:
    """Fixed display convention: ₪1,234.50 (two decimals, comma thousands)."""
    amount = round(float(value or 0), 2)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_quantity(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return f"{value:g}"


def format_date(value: Optional[date]) -> str:
    """Dates are printed as dd.mm.yyyy regardless of the caller's locale."""
    if value is None:
        return ""
    return value.strftime("%d.%m.%Y")


STYLES = """
    @page { size: A4; margin: 40px 50px; }
    * { box-sizing: border-box; }
    body { font-family: Arial, Helvetica, sans-serif; color: #333; font-size: 11px; margin: 0; }
    .header { display: flex; justify-content: space-between; margin-bottom: 30px; padding-bottom: 20px; border-bottom: 1px solid #ddd; }
    .company-name { font-size: 20px; font-weight: 700; margin-bottom: 8px; }
    .details { font-size: 10px; color: #555; }
    .client-title { font-size: 12px; font-weight: 600; margin-bottom: 4px; }
    .logo { width: 80px; height: 80px; object-fit: contain; }
    .title { font-size: 18px; font-weight: 700; text-align: center; margin-bottom: 8px; }
    .meta { text-align: center; margin-bottom: 24px; }
    .meta span { margin: 0 12px; }
    table.items { width: 100%; border-collapse: collapse; margin-bottom: 20px; }
    table.items th, table.items td { padding: 8px 10px; text-align: start; border-bottom: 1px solid #ddd; }
    table.items th { background: #2c3e50; color: #fff; font-weight: 600; }
    table.items tr.alt { background: #f3f6f9; }
    .num { text-align: end !important; white-space: nowrap; }
    .summary { margin-left: auto; width: 300px; }
    .summary-row { display: flex; justify-content: space-between; margin: 6px 0; }
    .total-row { font-size: 14px; font-weight: 700; padding-top: 8px; border-top: 1px solid #333; }
    .notes, .terms { margin-top: 20px; }
    .notes h3, .terms h3 { font-size: 12px; margin-bottom: 6px; }
    .valid-until { margin-top: 16px; font-size: 10px; text-align: center; color: #666; }
"""


class QuoteRenderer:
    """Turns a QuoteSnapshot into PDF bytes."""

    def __init__(
        self,
        backend: str = DEFAULT_BACKEND,
        timeout: float = 30.0,
        max_workers: int = 2,
        currency_symbol: str = "₪",
    ):
        # "module:function" taking HTML and returning PDF bytes
        self.backend = backend
        self.timeout = timeout
        self.currency_symbol = currency_symbol
        self._slots = asyncio.Semaphore(max_workers)
        self._processes: set = set()

    @classmethod
    def from_settings(cls, settings, backend: Optional[str] = None) -> "QuoteRenderer":
        return cls(
            backend=backend or settings.RENDER_BACKEND,
            timeout=settings.RENDER_TIMEOUT_SECONDS,
            max_workers=settings.RENDER_MAX_CONCURRENCY,
            currency_symbol=settings.CURRENCY_SYMBOL,
        )

    def money(self, value: float) -> str:
        return format_currency(value, self.currency_symbol)

    def _party_lines(self, info, labels: dict) -> str:
        lines = []
        for field_name, label in labels.items():
            value = getattr(info, field_name)
            if value:
                lines.append(f"{label}{_e(value)}")
        return "<br>".join(lines)

    def _item_rows(self, snapshot: QuoteSnapshot) -> str:
        rows = []
        for index, item in enumerate(snapshot.items):
            row_class = ' class="alt"' if index % 2 == 1 else ""
            rows.append(
                f"<tr{row_class}>"
                f'<td class="item-name">{_e(item.name)}</td>'
                f'<td class="item-desc">{_e(item.description) or "-"}</td>'
                f'<td class="num">{format_quantity(item.quantity)}</td>'
                f'<td class="num">{self.money(item.unit_price)}</td>'
                f'<td class="num">{self.money(item.total_price)}</td>'
                "</tr>"
            )
        return "\n".join(rows)

    def _summary(self, snapshot: QuoteSnapshot) -> str:
        rows = [
            ("Subtotal", self.money(snapshot.subtotal), ""),
        ]
        if snapshot.discount_amount:
            label = "Discount"
            if snapshot.discount_type == "percentage":
                label = f"Discount ({snapshot.discount:g}%)"
            rows.append((label, "-" + self.money(snapshot.discount_amount), ""))
        if snapshot.include_vat:
            rows.append((f"VAT ({snapshot.vat_rate:g}%)", self.money(snapshot.vat_amount), ""))
        rows.append(("Total", self.money(snapshot.total), " total-row"))
        return "\n".join(
            f'<div class="summary-row{extra}"><span>{label}</span><span>{value}</span></div>'
            for label, value, extra in rows
        )

    def build_html(self, snapshot: QuoteSnapshot) -> str:
        """Render the quote body as HTML. Every free-text value is escaped."""
        biz = snapshot.business_info
        client = snapshot.client_info

        logo_html = f'<img src="{_e(biz.logo)}" alt="" class="logo"/>' if biz.logo else ""
        business_details = self._party_lines(biz, {
            "address": "",
            "phone": "Phone: ",
            "email": "Email: ",
            "website": "",
            "tax_id": "Tax ID: ",
        })
        client_details = self._party_lines(client, {
            "name": "",
            "business_name": "",
            "address": "",
            "phone": "Phone: ",
            "email": "Email: ",
            "tax_id": "Tax ID: ",
        })

        version_html = f"<span>Version: {snapshot.version}</span>" if snapshot.version > 1 else ""
        notes_html = (
            f'<div class="notes"><h3>Notes</h3><div>{_multiline(snapshot.notes)}</div></div>'
            if snapshot.notes else ""
        )
        terms_html = (
            f'<div class="terms"><h3>Terms</h3><div>{_multiline(snapshot.terms)}</div></div>'
            if snapshot.terms else ""
        )
        valid_html = (
            f'<div class="valid-until">This quote is valid until {format_date(snapshot.valid_until)}</div>'
            if snapshot.valid_until else ""
        )

        return f"""<!DOCTYPE html>
<html lang="{_e(snapshot.language)}" dir="{_e(snapshot.direction)}">
<head>
<meta charset="utf-8">
<title>{_e(snapshot.title)} {_e(snapshot.quote_number)}</title>
<style>{STYLES}</style>
</head>
<body>
<div class="header">
  <div class="company">
    <div class="company-name">{_e(biz.name or "")}</div>
    <div class="details">{business_details}</div>
  </div>
  <div class="client">
    {logo_html}
    <div class="client-title">Client</div>
    <div class="details">{client_details}</div>
  </div>
</div>
<div class="title">{_e(snapshot.title)}</div>
<div class="meta">
  <span>Number: {_e(snapshot.quote_number)}</span>
  {version_html}
  <span>Date: {format_date(snapshot.issued_on)}</span>
</div>
<table class="items">
  <thead>
    <tr><th>Item</th><th>Description</th><th class="num">Qty</th><th class="num">Unit price</th><th class="num">Total</th></tr>
  </thead>
  <tbody>
{self._item_rows(snapshot)}
  </tbody>
</table>
<div class="summary">
{self._summary(snapshot)}
</div>
{notes_html}
{terms_html}
{valid_html}
</body>
</html>
"""

    @property
    def active_renders(self) -> int:
        """Worker processes currently alive."""
        return len(self._processes)

    @staticmethod
    def _worker_env() -> dict:
        # The worker must be able to import whatever backend the parent can
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(p for p in sys.path if p)
        return env

    async def _run_backend(self, document: str) -> bytes:
        async with self._slots:
            proc = await asyncio.create_subprocess_exec(
                sys.executable, "-m", WORKER_MODULE, self.backend,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._worker_env(),
            )
            self._processes.add(proc)
            try:
                stdout, stderr = await proc.communicate(document.encode("utf-8"))
            finally:
                # Reached on timeout too: wait_for cancels this coroutine
                if proc.returncode is None:
                    _kill(proc)
                    await proc.wait()
                self._processes.discard(proc)

        if proc.returncode != 0:
            reason = stderr.decode("utf-8", errors="replace").strip()
            raise RenderBackendError(reason or f"render worker exited with status {proc.returncode}")
        return stdout

    async def render(self, snapshot: QuoteSnapshot) -> bytes:
        """
        Render a snapshot to PDF bytes.

        Raises RenderTimeoutError when no result arrives within ``timeout``
        seconds (waiting for a free slot included); the worker is killed
        before the error is raised. Raises RenderFailureError when the
        backend fails.
        """
        document = self.build_html(snapshot)

        try:
            pdf = await asyncio.wait_for(self._run_backend(document), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(
                "[QUOTE-PDF] Rendering %s timed out after %.1fs", snapshot.quote_number, self.timeout
            )
            raise RenderTimeoutError(self.timeout)
        except (RenderBackendError, OSError) as e:
            logger.error("[QUOTE-PDF] Rendering %s failed: %s", snapshot.quote_number, e)
            raise RenderFailureError(str(e)) from e

        if not pdf:
            raise RenderFailureError("renderer returned an empty document")

        logger.info("[QUOTE-PDF] Rendered %s: %d bytes", snapshot.quote_number, len(pdf))
        return pdf

    def shutdown(self) -> None:
        """Kill any worker still running."""
        for proc in list(self._processes):
            if proc.returncode is None:
                _kill(proc)
        self._processes.clear()


def _kill(proc) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        # exited between the returncode check and the signal
        pass
