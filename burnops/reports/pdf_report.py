"""
Operational report PDF for a prescribed-burn record.
"""
import re
from io import BytesIO
from typing import List, Optional
from xml.sax.saxutils import escape

import pytz
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from slugify import slugify

from ..config import settings
from ..schemas.burns import OperationRecord
from ..services.checklists import LACES
from ..services.geometry import polygon_stats, vertices_from_geojson


FOREST_BLUE = colors.Color(40 / 255, 67 / 255, 135 / 255)


def report_filename(record: OperationRecord) -> str:
    slug = slugify(record.name) or "operazione"
    return f"report-{slug}-{record.created_at.strftime('%Y%m%d')}.pdf"


def markdown_to_paragraphs(text: str) -> List[str]:
    """Reduce the analysis Markdown to ReportLab paragraph markup."""
    out = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        is_heading = line.startswith("#")
        line = line.lstrip("#").strip()
        bullet = re.match(r"^[*\-]\s+", line)
        if bullet:
            line = line[bullet.end():]
        line = escape(line)
        line = re.sub(r"\*\*(.+?)\*\*", r"<b>\1</b>", line)
        line = line.replace("*", "")
        if len(line) > 2 and line.startswith("_") and line.endswith("_"):
            line = f"<i>{line[1:-1]}</i>"
        if is_heading:
            line = f"<b>{line}</b>"
        if bullet:
            line = f"&bull; {line}"
        out.append(line)
    return out


def _fmt(value: Optional[float], unit: str) -> str:
    return "N/D" if value is None else f"{value:g} {unit}".strip()


def _table(rows, col_widths) -> Table:
    table = Table(rows, colWidths=col_widths)
    table.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    return table


def build_report_pdf(record: OperationRecord, tz_name: Optional[str] = None) -> bytes:
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=record.name,
    )
    styles = getSampleStyleSheet()
    org_style = ParagraphStyle("Org", parent=styles["Title"], fontSize=16, textColor=FOREST_BLUE, spaceAfter=2)
    title_style = ParagraphStyle("ReportTitle", parent=styles["Heading2"], alignment=1)
    section = ParagraphStyle("Section", parent=styles["Heading3"], textColor=FOREST_BLUE, spaceBefore=8)
    body = styles["BodyText"]

    tz = pytz.timezone(tz_name or settings.tz_default)
    created_local = record.created_at.astimezone(tz)

    story = [
        Paragraph(escape(settings.report_org_name), org_style),
        Paragraph(escape(settings.report_title), title_style),
        Spacer(1, 6 * mm),
        Paragraph("DATI INTERVENTO", section),
        _table([
            ["Nome Operazione", record.name],
            ["Località", record.location_label or "N/D"],
            ["Modello Combustibile", record.fuel_model.value if record.fuel_model else "N/D"],
            ["Stato", record.status.value.upper()],
            ["Data", created_local.strftime("%d/%m/%Y %H:%M")],
            ["Sincronizzato", "Sì" if record.synced else "No (solo locale)"],
        ], [55 * mm, 120 * mm]),
    ]

    w = record.weather
    story += [
        Paragraph("CONDIZIONI METEO", section),
        _table([
            ["Temperatura", _fmt(w.temperature, "°C")],
            ["Umidità relativa", _fmt(w.humidity, "%")],
            ["Vento", _fmt(w.wind_speed, "km/h")],
            ["Pendenza", _fmt(w.slope_percent, "%")],
            ["Umidità combustibile", _fmt(w.fuel_moisture, "%")],
            ["Esposizione", w.aspect or "N/D"],
        ], [55 * mm, 120 * mm]),
    ]

    if record.area_geojson:
        stats = polygon_stats(vertices_from_geojson(record.area_geojson))
        story += [
            Paragraph("AREA OPERATIVA", section),
            _table([
                ["Superficie", f"{stats.area_ha:.2f} ha"],
                ["Perimetro", f"{stats.perimeter_m} m"],
                ["Centro", stats.center_label or "N/D"],
            ], [55 * mm, 120 * mm]),
        ]

    hours = record.personnel_hours
    story.append(Paragraph("PERSONALE IMPIEGATO", section))
    if hours.participants:
        rows = [["Nome", "Ruolo", "Ore"]]
        for p in hours.participants:
            rows.append([p.name, p.role, f"{hours.per_person_hours.get(p.id, 0.0):g}"])
        rows.append(["Totale", f"{hours.active_count} operatori", f"{hours.total_hours:g}"])
        table = _table(rows, [75 * mm, 65 * mm, 35 * mm])
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
            ("BACKGROUND", (0, 0), (-1, 0), colors.whitesmoke),
        ]))
        story.append(table)
    else:
        story.append(Paragraph("Nessun operatore registrato.", body))

    if record.ai_report:
        story.append(Paragraph("ANALISI TATTICA", section))
        for line in markdown_to_paragraphs(record.ai_report):
            story.append(Paragraph(line, body))

    story.append(Paragraph("PROTOCOLLO LACES", section))
    for item in LACES:
        story.append(Paragraph(f"<b>{item['id']} - {escape(item['title'])}:</b> {escape(item['desc'])}", body))

    doc.build(story)
    return buf.getvalue()
