import os
import csv
import glob
import logging
import sys
from concurrent.futures import ThreadPoolExecutor

from tacho_engine import TachoEngine
from tachydrive.infrastructure.repositories.decoder_card_repository import DecoderCardRepository

logger = logging.getLogger(__name__)


class FleetAnalytics:
    """
    Analyzes every card file of a folder in parallel.

    Each file is an independent engine run; no state is shared between
    workers apart from the read-only repository configuration.
    """

    PATTERNS = ("*.ddd", "*.DDD", "*.json")

    def __init__(self, folder_path, repository=None, max_workers=None):
        self.folder_path = folder_path
        self.repository = repository or DecoderCardRepository()
        self.max_workers = max_workers
        self.results = []

    def process_file(self, file_path):
        filename = os.path.basename(file_path)
        try:
            decoded = self.repository.decode(file_path)
        except Exception as e:
            logger.warning(f"{filename}: {e}")
            return {"filename": filename, "status": "ERROR", "error": str(e)}

        result = TachoEngine().analyze(decoded)
        if "error" in result:
            return {"filename": filename, "status": "ERROR", "error": result["details"]}

        driver = result["driver"]
        days = result["days"]
        infractions = result["infractions"]
        return {
            "filename": filename,
            "status": "OK",
            "driver_name": f"{driver['firstName']} {driver['name']}".strip(),
            "card_number": driver["cardNumber"],
            "days": len(days),
            "total_drive_time_hours": round(sum(d["drivingHours"] for d in days), 2),
            "total_work_time_hours": round(sum(d["totalWorkHours"] for d in days), 2),
            # days are sorted most recent first
            "last_activity": days[0]["date"] if days else "N/A",
            "infractions": len(infractions),
            "serious_infractions": sum(1 for i in infractions if i["severity"] in ("GRAVE", "TRES_GRAVE")),
        }

    def list_files(self):
        files = set()
        for pattern in self.PATTERNS:
            files.update(glob.glob(os.path.join(self.folder_path, pattern)))
        return sorted(files)

    def run(self):
        files = self.list_files()
        logger.info(f"Analyzing {len(files)} files in {self.folder_path}...")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            self.results = list(executor.map(self.process_file, files))

        return self.results

    def print_report(self):
        print(f"{'FICHIER':<25} | {'CHAUFFEUR':<20} | {'JOURS':<5} | {'COND.(H)':<8} | {'INF':<3} | {'STATUT':<6}")
        print("-" * 85)
        for r in self.results:
            if r["status"] == "OK":
                print(f"{r['filename'][:25]:<25} | {r['driver_name'][:20]:<20} | {r['days']:<5} | {r['total_drive_time_hours']:<8} | {r['infractions']:<3} | OK")
            else:
                print(f"{r['filename'][:25]:<25} | {'ERREUR':<20} | {'-':<5} | {'-':<8} | {'-':<3} | {r.get('error', '')}")

    def save_csv(self, filename="fleet_report.csv"):
        with open(filename, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(["Fichier", "Chauffeur", "Carte", "Jours", "Conduite (h)", "Travail (h)",
                             "Derniere activite", "Infractions", "Infractions graves", "Statut"])
            for r in self.results:
                if r["status"] == "OK":
                    writer.writerow([r["filename"], r["driver_name"], r["card_number"], r["days"],
                                     r["total_drive_time_hours"], r["total_work_time_hours"],
                                     r["last_activity"], r["infractions"], r["serious_infractions"], "OK"])
                else:
                    writer.writerow([r["filename"], "ERREUR", "", "", "", "", "", "", "", r.get("error", "")])
        return filename


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    folder = sys.argv[1] if len(sys.argv) > 1 else "."
    analyzer = FleetAnalytics(folder)
    analyzer.run()
    analyzer.print_report()
