"""Customer list exports (CSV and printable HTML)"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Sequence, Tuple
import csv
import io
import re
from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.services.customers import CustomerRecord

class ExportFormat(str, Enum):
    CSV = "csv"
    EXCEL = "excel"
    PDF = "pdf"

HEADERS = ["Name", "Email", "Created Date", "Orders", "Total Spent"]
HEADERS_WITH_COUNTRY = ["Name", "Email", "Country", "Created Date", "Orders", "Total Spent"]

MEDIA_TYPES = {
    ExportFormat.CSV: "text/csv; charset=utf-8",
    # Excel opens the same CSV payload
    ExportFormat.EXCEL: "application/vnd.ms-excel; charset=utf-8",
    ExportFormat.PDF: "text/html; charset=utf-8",
}

EXTENSIONS = {
    ExportFormat.CSV: "csv",
    ExportFormat.EXCEL: "csv",
    ExportFormat.PDF: "html",
}

def _row(customer: CustomerRecord, include_country: bool) -> list:
    row = [customer.name, customer.email]
    if include_country:
        row.append(customer.country or "Unknown")
    row.extend([customer.created_at, customer.number_of_orders, customer.total_spent])
    return row

def safe_filename(value: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "-", value.strip()).strip("-")
    return cleaned or "customers"

class ExportService:
    """Renders customer lists for download"""

    def __init__(self):
        template_dir = Path(__file__).parent.parent / "templates" / "exports"
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(['html', 'xml'])
        )

    def to_csv(self, customers: Sequence[CustomerRecord], include_country: bool = False) -> str:
        """Strings quoted with doubled inner quotes, order counts bare"""
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
        writer.writerow(HEADERS_WITH_COUNTRY if include_country else HEADERS)
        for customer in customers:
            writer.writerow(_row(customer, include_country))
        return buffer.getvalue()

    def to_html(
        self,
        customers: Sequence[CustomerRecord],
        title: str = "Customer Export",
        include_country: bool = False,
    ) -> str:
        template = self.env.get_template("customers.html")
        return template.render(
            title=title,
            generated_at=datetime.now().strftime("%Y-%m-%d %H:%M"),
            headers=HEADERS_WITH_COUNTRY if include_country else HEADERS,
            rows=[_row(customer, include_country) for customer in customers],
            total=len(customers),
        )

    def render(
        self,
        customers: Sequence[CustomerRecord],
        export_format: ExportFormat,
        filename: str,
        title: str = "Customer Export",
        include_country: bool = False,
    ) -> Tuple[str, str, str]:
        """
        Render an export

        Returns:
            (content, media type, download filename)
        """
        if export_format == ExportFormat.PDF:
            content = self.to_html(customers, title=title, include_country=include_country)
        else:
            content = self.to_csv(customers, include_country=include_country)

        download_name = f"{safe_filename(filename)}.{EXTENSIONS[export_format]}"
        return content, MEDIA_TYPES[export_format], download_name

def export_headers(download_name: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{download_name}"'}
