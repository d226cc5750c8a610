"""Tests for period filtering and the CSV, Excel and PDF exports."""
import os
import sys
import tempfile
import unittest
from datetime import date

import pandas as pd

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from export_manager import ExportManager
from export_pdf import generate_pdf_report, _fmt_hours
from report_filter import filter_period, period_label


def _day(day, driving=8.0, other=0.25, availability=0.0, rest=15.75):
    return {
        "date": day,
        "drivingHours": driving,
        "otherWorkHours": other,
        "availabilityHours": availability,
        "restHours": rest,
        "totalWorkHours": round(driving + other, 2),
    }


SAMPLE_RESULT = {
    "success": True,
    "driver": {"name": "MARTIN", "firstName": "Paul", "cardNumber": "F000123456789000"},
    "infractions": [
        {"code": "ANOMALIE_DONNEES", "type": "Anomalie de données", "description": "Sans date",
         "severity": "LEGERE", "date": None},
        {"code": "CONDUITE_CONTINUE", "type": "Conduite continue", "description": "Conduite continue de 5h00",
         "severity": "TRES_GRAVE", "date": "2024-03-02"},
        {"code": "CONDUITE_JOURNALIERE", "type": "Conduite journalière", "description": "9h30",
         "severity": "LEGERE", "date": "2024-03-05"},
    ],
    "days": [_day("2024-03-05", driving=9.5), _day("2024-03-03"), _day("2024-03-02", other=1.0 / 3)],
}


class TestFilterPeriod(unittest.TestCase):

    def test_bounds_are_inclusive(self):
        data = filter_period(SAMPLE_RESULT, "2024-03-02", "2024-03-03")
        self.assertEqual([d["date"] for d in data["days"]], ["2024-03-03", "2024-03-02"])
        self.assertEqual([i["code"] for i in data["infractions"]], ["ANOMALIE_DONNEES", "CONDUITE_CONTINUE"])

    def test_open_bounds(self):
        self.assertEqual(len(filter_period(SAMPLE_RESULT, start_date="2024-03-03")["days"]), 2)
        self.assertEqual(len(filter_period(SAMPLE_RESULT, end_date="2024-03-02")["days"]), 1)
        self.assertEqual(filter_period(SAMPLE_RESULT)["days"], SAMPLE_RESULT["days"])

    def test_undated_infractions_always_kept(self):
        data = filter_period(SAMPLE_RESULT, "2030-01-01", "2030-12-31")
        self.assertEqual(data["days"], [])
        self.assertEqual([i["code"] for i in data["infractions"]], ["ANOMALIE_DONNEES"])

    def test_date_objects_accepted(self):
        data = filter_period(SAMPLE_RESULT, date(2024, 3, 5), date(2024, 3, 5))
        self.assertEqual([d["date"] for d in data["days"]], ["2024-03-05"])

    def test_input_not_modified(self):
        filter_period(SAMPLE_RESULT, "2024-03-05")
        self.assertEqual(len(SAMPLE_RESULT["days"]), 3)
        self.assertEqual(len(SAMPLE_RESULT["infractions"]), 3)

    def test_period_label(self):
        self.assertEqual(period_label(), "Toutes les dates")
        self.assertEqual(period_label("2024-03-01", "2024-03-31"), "2024-03-01 au 2024-03-31")
        self.assertEqual(period_label(start_date="2024-03-01"), "depuis le 2024-03-01")
        self.assertEqual(period_label(end_date=date(2024, 3, 31)), "jusqu'au 2024-03-31")


class TestCsvExport(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def test_one_row_per_day(self):
        path = os.path.join(self.tmpdir, "out.csv")
        self.assertEqual(ExportManager.export_to_csv(SAMPLE_RESULT, path), path)

        with open(path, encoding="utf-8") as f:
            lines = f.read().splitlines()
        self.assertEqual(lines[0], "Date,Conduite (h),Autre Travail (h),Disponible (h),Repos (h),Total Travail (h)")
        self.assertEqual(lines[1], "2024-03-05,9.50,0.25,0.00,15.75,9.75")
        self.assertEqual(lines[3], "2024-03-02,8.00,0.33,0.00,15.75,8.33")
        self.assertEqual(len(lines), 4)

    def test_period_applied(self):
        path = os.path.join(self.tmpdir, "period.csv")
        ExportManager.export_to_csv(SAMPLE_RESULT, path, "2024-03-03", "2024-03-31")
        frame = pd.read_csv(path)
        self.assertEqual(list(frame["Date"]), ["2024-03-05", "2024-03-03"])

    def test_nothing_to_export(self):
        with self.assertRaises(ValueError):
            ExportManager.export_to_csv(SAMPLE_RESULT, os.path.join(self.tmpdir, "x.csv"), "2030-01-01")


class TestExcelExport(unittest.TestCase):

    def test_sheets(self):
        path = os.path.join(tempfile.mkdtemp(), "out.xlsx")
        ExportManager.export_to_excel(SAMPLE_RESULT, path)

        sheets = pd.read_excel(path, sheet_name=None)
        self.assertEqual(list(sheets), ["Synthèse", "Activités journalières", "Infractions"])
        summary = dict(zip(sheets["Synthèse"]["Champ"], sheets["Synthèse"]["Valeur"]))
        self.assertEqual(summary["Chauffeur"], "MARTIN")
        self.assertEqual(int(summary["Infractions"]), 3)
        self.assertEqual(len(sheets["Activités journalières"]), 3)
        self.assertEqual(list(sheets["Infractions"]["Date"]), ["-", "2024-03-02", "2024-03-05"])

    def test_no_infraction_sheet_when_clean(self):
        clean = dict(SAMPLE_RESULT, infractions=[])
        path = os.path.join(tempfile.mkdtemp(), "clean.xlsx")
        ExportManager.export_to_excel(clean, path)
        self.assertNotIn("Infractions", pd.read_excel(path, sheet_name=None))


class TestDefaultFilename(unittest.TestCase):

    def test_default_filename(self):
        result = {"driver": {"name": "DUPONT (MOCK)"}}
        self.assertEqual(ExportManager.default_filename(result, "pdf", today=date(2024, 3, 8)),
                         "tachydrive_DUPONT_(MOCK)_2024-03-08.pdf")

    def test_unknown_driver(self):
        self.assertEqual(ExportManager.default_filename({}, today=date(2024, 3, 8)),
                         "tachydrive_chauffeur_2024-03-08.csv")


class TestPdfExport(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def _assert_pdf(self, path):
        self.assertTrue(os.path.exists(path))
        with open(path, "rb") as f:
            self.assertEqual(f.read(4), b"%PDF")

    def test_report_with_infractions(self):
        path = os.path.join(self.tmpdir, "report.pdf")
        self.assertEqual(generate_pdf_report(SAMPLE_RESULT, path), path)
        self._assert_pdf(path)
        self.assertGreater(os.path.getsize(path), 1024)

    def test_clean_report(self):
        path = os.path.join(self.tmpdir, "clean.pdf")
        generate_pdf_report(dict(SAMPLE_RESULT, infractions=[]), path, "2024-03-01", "2024-03-31")
        self._assert_pdf(path)

    def test_empty_period(self):
        path = os.path.join(self.tmpdir, "empty.pdf")
        generate_pdf_report(SAMPLE_RESULT, path, "2030-01-01", "2030-01-31")
        self._assert_pdf(path)

    def test_overflowing_day_bar(self):
        # both generations summed can exceed 24h
        path = os.path.join(self.tmpdir, "overflow.pdf")
        generate_pdf_report(dict(SAMPLE_RESULT, days=[_day("2024-03-05", driving=20.0, rest=20.0)]), path)
        self._assert_pdf(path)

    def test_fmt_hours(self):
        self.assertEqual(_fmt_hours(8.25), "8h15")
        self.assertEqual(_fmt_hours(0.33), "0h20")
        self.assertEqual(_fmt_hours(None), "0h00")


if __name__ == '__main__':
    unittest.main()
