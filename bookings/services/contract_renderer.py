from io import BytesIO
import logging
import re
from decimal import Decimal
from typing import Iterable

from django.conf import settings
from django.template import engines
from django.template.loader import render_to_string
from django.utils import timezone
from docx import Document
from pypdf import PdfReader, PdfWriter
from pypdf.generic import BooleanObject, NameObject
from xhtml2pdf import pisa

from ..models import ContractTemplate, Rental

logger = logging.getLogger(__name__)

# Readable placeholder descriptions for the contract template constructor UI.
PLACEHOLDER_GUIDE = [
    (
        "Nájemce",
        {
            "customer.full_name": "Jméno a příjmení",
            "customer.first_name": "Jméno",
            "customer.last_name": "Příjmení",
            "customer.email": "Email",
            "customer.phone": "Telefon",
            "customer.id_card_number": "Číslo OP",
            "customer.drivers_license_number": "Číslo ŘP",
        },
    ),
    (
        "Vozidlo",
        {
            "vehicle.brand": "Značka",
            "vehicle.model": "Model",
            "vehicle.license_plate": "SPZ",
            "vehicle.vin": "VIN",
            "vehicle.year": "Rok výroby",
            "vehicle.label": "Značka + SPZ",
        },
    ),
    (
        "Smlouva",
        {
            "rental.contract_number": "Číslo smlouvy",
            "rental.start_at": "Začátek nájmu",
            "rental.end_at": "Konec nájmu",
            "rental.duration_category": "Typ sazby",
            "rental.unit_rate": "Sazba",
            "rental.total_price": "Celková cena nájemného",
            "rental.digital_consent_at": "Digitálně podepsáno",
            "rental.deal_name": "Název obchodu",
        },
    ),
    (
        "Pronajímatel",
        {
            "company.name": "Název / jméno",
            "company.address": "Adresa",
            "company.id": "IČO",
            "company.web": "Web",
        },
    ),
    (
        "Služební",
        {
            "meta.today": "Dnešní datum",
            "meta.generated_at": "Datum a čas vygenerování",
        },
    ),
]


def company_details() -> dict[str, str]:
    return {
        "name": getattr(settings, "COMPANY_NAME", ""),
        "address": getattr(settings, "COMPANY_ADDRESS", ""),
        "id": getattr(settings, "COMPANY_ID", ""),
        "web": getattr(settings, "COMPANY_WEB", ""),
    }


def get_contract_context(rental: Rental) -> dict:
    return {
        "rental": rental,
        "vehicle": rental.vehicle,
        "customer": rental.customer,
        "company": company_details(),
        "meta": {
            "generated_at": timezone.localtime(),
            "today": timezone.localdate(),
        },
    }


def _normalize_html_charset(html: str, target: str = "utf-8") -> str:
    """
    Force HTML to declare UTF-8 so browsers decode Czech text correctly.

    Word-exported HTML often keeps a windows-1250 meta tag while Django still
    encodes the response as UTF-8. Rewrite the charset declaration or inject
    one if missing.
    """
    charset_re = re.compile(r'(<meta[^>]+charset=)([\"\\\']?)([^\"\\\' >]+)', re.IGNORECASE)

    updated, replaced = charset_re.subn(rf"\1\2{target}", html, count=1)
    if replaced == 0:
        head_match = re.search(r"<head[^>]*>", html, flags=re.IGNORECASE)
        meta_tag = f'<meta charset="{target}">'
        if head_match:
            insert_at = head_match.end()
            updated = html[:insert_at] + meta_tag + html[insert_at:]
        else:
            updated = meta_tag + html

    return updated


def _fmt_datetime(value) -> str:
    return timezone.localtime(value).strftime("%d.%m.%Y %H:%M") if value else ""


def _fmt_decimal(value) -> str:
    if value is None:
        return ""
    number = Decimal(value)
    return f"{number:.2f}".rstrip("0").rstrip(".")


def build_placeholder_values(rental: Rental) -> dict[str, str]:
    """Flatten rental/vehicle/customer data into string placeholders."""
    customer = rental.customer
    vehicle = rental.vehicle
    company = company_details()

    values = {
        "customer.full_name": customer.full_name,
        "customer.first_name": customer.first_name,
        "customer.last_name": customer.last_name,
        "customer.email": customer.email,
        "customer.phone": customer.phone,
        "customer.id_card_number": customer.id_card_number,
        "customer.drivers_license_number": customer.drivers_license_number,
        "vehicle.brand": vehicle.brand,
        "vehicle.model": vehicle.model,
        "vehicle.license_plate": vehicle.license_plate,
        "vehicle.vin": vehicle.vin,
        "vehicle.year": vehicle.year,
        "vehicle.label": str(vehicle),
        "rental.contract_number": rental.contract_number or "",
        "rental.start_at": _fmt_datetime(rental.start_at),
        "rental.end_at": _fmt_datetime(rental.end_at),
        "rental.duration_category": rental.get_duration_category_display(),
        "rental.unit_rate": _fmt_decimal(rental.unit_rate),
        "rental.total_price": _fmt_decimal(rental.total_price),
        "rental.digital_consent_at": _fmt_datetime(rental.digital_consent_at),
        "rental.deal_name": rental.deal_name,
        "company.name": company["name"],
        "company.address": company["address"],
        "company.id": company["id"],
        "company.web": company["web"],
        "meta.today": timezone.localdate().strftime("%d.%m.%Y"),
        "meta.generated_at": timezone.localtime().strftime("%d.%m.%Y %H:%M"),
    }

    return {key: "" if value is None else str(value) for key, value in values.items()}


def placeholder_token_map(rental: Rental) -> dict[str, str]:
    """Map the usual placeholder spellings to values for DOCX replacement."""
    mapping: dict[str, str] = {}
    values = build_placeholder_values(rental)
    for dotted, value in values.items():
        flat = dotted.replace(".", "_")
        variants = (
            f"{{{{ {dotted} }}}}",
            f"{{{{{dotted}}}}}",
            f"{{{{ {flat} }}}}",
            f"{{{{{flat}}}}}",
        )
        for token in variants:
            mapping[token] = value
    return mapping


def placeholder_guide() -> list[dict]:
    groups = []
    for title, items in PLACEHOLDER_GUIDE:
        groups.append(
            {
                "title": title,
                "items": [
                    {
                        "token": f"{{{{ {key} }}}}",
                        "alt": key.replace(".", "_"),
                        "description": description,
                    }
                    for key, description in items.items()
                ],
            }
        )
    return groups


def render_html_template(contract_template: ContractTemplate, rental: Rental) -> str:
    if not contract_template.body_html:
        raise ValueError("HTML template body is empty.")

    django_engine = engines["django"]
    template = django_engine.from_string(contract_template.body_html)
    html = template.render(get_contract_context(rental))
    return _normalize_html_charset(html)


def render_default_contract(rental: Rental) -> str:
    """The built-in contract layout, used when no custom template is chosen."""
    return render_to_string("bookings/contract_print.html", get_contract_context(rental))


def render_html_to_pdf(html: str) -> bytes:
    output = BytesIO()
    result = pisa.CreatePDF(html, dest=output, encoding="utf-8")
    output.seek(0)
    if result.err:
        raise ValueError("Could not render PDF from HTML template.")
    return output.getvalue()


def _replace_in_paragraphs(paragraphs: Iterable, mapping: dict[str, str]):
    for paragraph in paragraphs:
        original = paragraph.text
        updated = original
        for key, value in mapping.items():
            if key in updated:
                updated = updated.replace(key, value)
        if updated != original:
            paragraph.text = updated


def render_docx(contract_template: ContractTemplate, rental: Rental) -> BytesIO:
    """
    Load a DOCX template and replace placeholders like {{ customer.full_name }}
    in paragraphs, tables, headers and footers.
    """
    document = Document(contract_template.file.path)
    mapping = placeholder_token_map(rental)

    _replace_in_paragraphs(document.paragraphs, mapping)
    for table in document.tables:
        for row in table.rows:
            for cell in row.cells:
                _replace_in_paragraphs(cell.paragraphs, mapping)

    for section in document.sections:
        _replace_in_paragraphs(section.header.paragraphs, mapping)
        _replace_in_paragraphs(section.footer.paragraphs, mapping)

    output = BytesIO()
    document.save(output)
    output.seek(0)
    return output


def render_pdf(contract_template: ContractTemplate | None, rental: Rental) -> BytesIO:
    """
    Render a PDF contract from a fillable PDF template, from an HTML body, or
    from the built-in layout when no template is given.
    """
    if contract_template is None:
        return BytesIO(render_html_to_pdf(render_default_contract(rental)))

    if contract_template.file:
        return _fill_pdf_form(contract_template.file.path, rental)

    if contract_template.body_html:
        html = render_html_template(contract_template, rental)
        return BytesIO(render_html_to_pdf(html))

    raise ValueError("PDF template requires either HTML body or an uploaded PDF file.")


def _fill_pdf_form(template_path: str, rental: Rental) -> BytesIO:
    """Fill AcroForm fields named after placeholders, e.g. customer_full_name."""
    field_values = {key.replace(".", "_"): value for key, value in build_placeholder_values(rental).items()}
    reader = PdfReader(template_path)
    writer = PdfWriter()
    for page in reader.pages:
        writer.add_page(page)

    if reader.get_fields():
        for page in writer.pages:
            writer.update_page_form_field_values(page, field_values)

    acroform = writer._root_object.get("/AcroForm")  # type: ignore[attr-defined]
    if acroform is not None:
        acroform.update({NameObject("/NeedAppearances"): BooleanObject(True)})

    output = BytesIO()
    writer.write(output)
    output.seek(0)
    return output
