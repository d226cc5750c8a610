import json
import sys
from datetime import date

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.graphics.shapes import Rect, String, Line, Drawing

from report_filter import filter_period, period_label

SEVERITY_COLORS = {
    "TRES_GRAVE": colors.HexColor("#DC2626"),
    "GRAVE": colors.HexColor("#EF4444"),
    "MOYENNE": colors.HexColor("#F59E0B"),
    "LEGERE": colors.HexColor("#10B981"),
}

ACTIVITY_COLORS = (
    ("drivingHours", colors.HexColor("#3498db")),       # Conduite
    ("otherWorkHours", colors.HexColor("#95a5a6")),     # Autre travail
    ("availabilityHours", colors.HexColor("#f1c40f")),  # Disponible
    ("restHours", colors.HexColor("#2ecc71")),          # Repos
)

RSE_REMINDER = [
    "<b>Conduite continue:</b> Max 4h30 sans pause de 45min (ou 15min+30min)",
    "<b>Conduite journaliere:</b> Max 9h (10h possible 2x/semaine)",
    "<b>Conduite hebdomadaire:</b> Max 56h/semaine, 90h/2 semaines",
    "<b>Repos journalier:</b> Min 11h (9h reduit 3x/semaine)",
    "<b>Repos hebdomadaire:</b> Min 45h avant fin 6 jours de conduite",
]


def draw_day_bar(drawing, day):
    """Draws a 24h bar split by activity share of the day."""
    width = 160 * mm
    height = 6 * mm

    drawing.add(Rect(0, 0, width, height, fillColor=colors.whitesmoke, strokeColor=colors.black))

    # Hour markers (every 3 hours)
    for i in range(0, 25, 3):
        x = (i / 24.0) * width
        drawing.add(Line(x, 0, x, -2, strokeColor=colors.grey))
        drawing.add(String(x - 2, -8, f"{i:02d}", fontSize=6, fontName="Helvetica"))

    x = 0
    for key, color in ACTIVITY_COLORS:
        hours = float(day.get(key) or 0)
        block_width = min(hours / 24.0, 1.0) * width
        # Cap so that summed generations never overflow the 24h bar
        block_width = min(block_width, width - x)
        if block_width <= 0:
            continue
        drawing.add(Rect(x, 0, block_width, height, fillColor=color, strokeWidth=0))
        x += block_width


def _fmt_hours(hours):
    total = int(round(float(hours or 0) * 60))
    return f"{total // 60}h{total % 60:02d}"


def generate_pdf_report(result, output_path, start_date=None, end_date=None):
    data = filter_period(result, start_date, end_date)
    days = data.get("days", [])
    infractions = data.get("infractions", [])
    driver = data.get("driver") or {}
    driver_name = f"{driver.get('name', 'Chauffeur')} {driver.get('firstName', '')}".strip()

    doc = SimpleDocTemplate(output_path, pagesize=A4, rightMargin=20, leftMargin=20, topMargin=20, bottomMargin=20)
    styles = getSampleStyleSheet()
    elements = []

    # Header
    elements.append(Paragraph("TachyDrive - Rapport d'Activite", styles['Title']))
    elements.append(Spacer(1, 12))
    info_data = [
        ["Chauffeur:", driver_name, "Carte:", driver.get("cardNumber") or "-"],
        ["Periode:", period_label(start_date, end_date), "Nombre de jours:", str(len(days))],
    ]
    it = Table(info_data, colWidths=[70, 190, 90, 150])
    it.setStyle(TableStyle([
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.darkslategrey),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
    ]))
    elements.append(it)
    elements.append(Spacer(1, 18))

    # Daily hours
    table_data = [["Date", "Conduite", "Autre Travail", "Disponible", "Repos", "Total Travail"]]
    for day in days:
        table_data.append([
            day["date"][:10],
            _fmt_hours(day.get("drivingHours")),
            _fmt_hours(day.get("otherWorkHours")),
            _fmt_hours(day.get("availabilityHours")),
            _fmt_hours(day.get("restHours")),
            _fmt_hours(day.get("totalWorkHours")),
        ])
    t = Table(table_data, repeatRows=1)
    t.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor("#4F46E5")),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTNAME', (-1, 1), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor("#f9f9f9")]),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor("#dddddd")),
    ]))
    elements.append(t)
    elements.append(Spacer(1, 18))

    # Activity bars (last 7 days)
    if days:
        elements.append(Paragraph("Repartition des activites (7 derniers jours)", styles['Heading2']))
        for day in days[:7]:
            elements.append(Paragraph(day["date"][:10], styles['Heading4']))
            d = Drawing(160 * mm, 12 * mm)
            draw_day_bar(d, day)
            elements.append(d)
        elements.append(Spacer(1, 12))

    # Infractions
    if infractions:
        elements.append(Paragraph(f"Infractions RSE Detectees ({len(infractions)})", styles['Heading2']))
        inf_data = [["Code", "Type", "Description", "Date", "Gravite"]]
        for inf in infractions:
            severity = inf.get("severity") or "MOYENNE"
            sev_p = Paragraph(f"<b>{severity}</b>", ParagraphStyle(
                'sev', fontSize=7, textColor=SEVERITY_COLORS.get(severity, colors.HexColor("#6B7280"))))
            inf_data.append([
                Paragraph(f"<b>{inf.get('code', '')}</b>", ParagraphStyle('code', fontSize=7)),
                Paragraph(inf.get("type", ""), ParagraphStyle('type', fontSize=7)),
                Paragraph(inf.get("description", ""), ParagraphStyle('desc', fontSize=7)),
                inf.get("date") or "-",
                sev_p,
            ])
        t = Table(inf_data, colWidths=[95, 70, 210, 55, 60], repeatRows=1)
        t.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor("#EF4444")),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 7),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ]))
        elements.append(t)
        elements.append(Spacer(1, 12))

        reminder_style = ParagraphStyle('rse', fontSize=8, textColor=colors.HexColor("#92400E"), leading=11)
        reminder = [[Paragraph("<b>Rappel Reglementation RSE (CE 561/2006)</b>", reminder_style)]]
        reminder += [[Paragraph(f"• {line}", reminder_style)] for line in RSE_REMINDER]
        rt = Table(reminder, colWidths=[490])
        rt.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor("#FEF3C7")),
            ('LINEBEFORE', (0, 0), (0, -1), 3, colors.HexColor("#F59E0B")),
        ]))
        elements.append(rt)
    else:
        ok_style = ParagraphStyle('ok', fontSize=10, textColor=colors.HexColor("#065F46"), alignment=1)
        ok = Table([
            [Paragraph("<b>Aucune infraction detectee</b>", ok_style)],
            [Paragraph("Toutes les regles RSE sont respectees", ok_style)],
        ], colWidths=[490])
        ok.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor("#D1FAE5")),
            ('LINEBEFORE', (0, 0), (0, -1), 3, colors.HexColor("#10B981")),
        ]))
        elements.append(ok)

    elements.append(Spacer(1, 18))
    elements.append(Paragraph(f"Genere le {date.today().strftime('%d/%m/%Y')} par TachyDrive", styles['Italic']))
    elements.append(Paragraph(
        "<i>Conforme au Reglement (CE) n 561/2006 relatif aux temps de conduite et de repos</i>",
        ParagraphStyle('foot', fontSize=7, textColor=colors.grey)))

    doc.build(elements)
    return output_path


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: python3 export_pdf.py resultat.json rapport.pdf")
    else:
        with open(sys.argv[1], 'r', encoding='utf-8') as f:
            data = json.load(f)
        generate_pdf_report(data, sys.argv[2])
        print(f"PDF genere: {sys.argv[2]}")
