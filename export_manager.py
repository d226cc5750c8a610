import os
import re
from datetime import date

import pandas as pd

from report_filter import filter_period, period_label

DAY_COLUMNS = [
    ("date", "Date"),
    ("drivingHours", "Conduite (h)"),
    ("otherWorkHours", "Autre Travail (h)"),
    ("availabilityHours", "Disponible (h)"),
    ("restHours", "Repos (h)"),
    ("totalWorkHours", "Total Travail (h)"),
]

INFRACTION_COLUMNS = [
    ("code", "Code"),
    ("type", "Type"),
    ("description", "Description"),
    ("date", "Date"),
    ("severity", "Gravité"),
]


class ExportManager:
    @staticmethod
    def days_frame(days):
        """Daily hours as a DataFrame with the report column headers."""
        rows = []
        for day in days:
            row = {"Date": day["date"][:10]}
            for key, label in DAY_COLUMNS[1:]:
                row[label] = round(float(day.get(key) or 0), 2)
            rows.append(row)
        return pd.DataFrame(rows, columns=[label for _, label in DAY_COLUMNS])

    @staticmethod
    def infractions_frame(infractions):
        rows = [
            {label: (inf.get(key) if inf.get(key) is not None else "-") for key, label in INFRACTION_COLUMNS}
            for inf in infractions
        ]
        return pd.DataFrame(rows, columns=[label for _, label in INFRACTION_COLUMNS])

    @staticmethod
    def export_to_csv(result, filepath, start_date=None, end_date=None):
        """
        Exporte les heures journalières en CSV (une ligne par jour, heures à 2 décimales).
        """
        data = filter_period(result, start_date, end_date)
        if not data["days"]:
            raise ValueError("Aucune donnee a exporter")
        ExportManager.days_frame(data["days"]).to_csv(filepath, index=False, float_format="%.2f")
        return filepath

    @staticmethod
    def export_to_excel(result, filepath, start_date=None, end_date=None):
        """
        Exporte le rapport dans un fichier Excel avec feuilles multiples.
        """
        data = filter_period(result, start_date, end_date)
        driver = data.get("driver", {})

        with pd.ExcelWriter(filepath, engine='openpyxl') as writer:
            # 1. Synthèse
            days = data.get("days", [])
            summary_data = {
                'Champ': [
                    'Chauffeur', 'Prénom', 'N. Carte',
                    'Période', 'Nombre de jours',
                    'Conduite totale (h)', 'Travail total (h)', 'Infractions',
                ],
                'Valeur': [
                    driver.get('name', 'Inconnu'),
                    driver.get('firstName', ''),
                    driver.get('cardNumber', ''),
                    period_label(start_date, end_date),
                    len(days),
                    round(sum(d.get('drivingHours', 0) for d in days), 2),
                    round(sum(d.get('totalWorkHours', 0) for d in days), 2),
                    len(data.get("infractions", [])),
                ],
            }
            pd.DataFrame(summary_data).to_excel(writer, sheet_name='Synthèse', index=False)

            # 2. Activités journalières
            ExportManager.days_frame(days).to_excel(writer, sheet_name='Activités journalières', index=False)

            # 3. Infractions
            infractions = data.get("infractions", [])
            if infractions:
                ExportManager.infractions_frame(infractions).to_excel(writer, sheet_name='Infractions', index=False)
        return filepath

    @staticmethod
    def default_filename(result, extension="csv", today=None):
        """tachydrive_<chauffeur>_<YYYY-MM-DD>.<ext>"""
        driver = result.get("driver") or {}
        name = re.sub(r"\s", "_", driver.get("name") or "") or "chauffeur"
        stamp = (today or date.today()).isoformat()
        return f"tachydrive_{name}_{stamp}.{extension}"

    @staticmethod
    def default_path(result, extension, directory="."):
        return os.path.join(directory, ExportManager.default_filename(result, extension))
