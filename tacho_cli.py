#!/usr/bin/env python3
"""
TachyDrive - CLI
Analyse une carte conducteur (.ddd ou sortie JSON du décodeur) et génère
le rapport d'heures et d'infractions RSE en JSON, CSV, Excel ou PDF.
"""
import argparse
import json
import sys
import os
import logging
from datetime import datetime

from report_filter import filter_period, period_label
from tacho_config import TachoConfig


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="🚛 TachyDrive CLI - Heures et infractions RSE d'une carte conducteur",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exemples:
  tachydrive carte.ddd                              # Résumé à l'écran
  tachydrive carte.ddd --json rapport.json          # Sauve le JSON
  tachydrive carte.ddd --csv                        # CSV (nom automatique)
  tachydrive carte.ddd --pdf rapport.pdf --start 2024-03-01 --end 2024-03-31
  tachydrive carte.ddd --all sortie/                # Tous les formats
        """
    )
    parser.add_argument("file", help="Fichier carte .ddd ou JSON du décodeur")
    parser.add_argument("--json", nargs="?", const="auto", metavar="FILE", help="Sortie JSON (chemin optionnel)")
    parser.add_argument("--csv", nargs="?", const="auto", metavar="FILE", help="Export CSV des heures journalières")
    parser.add_argument("--excel", nargs="?", const="auto", metavar="FILE", help="Export Excel")
    parser.add_argument("--pdf", nargs="?", const="auto", metavar="FILE", help="Rapport PDF")
    parser.add_argument("--all", nargs="?", const="auto", metavar="DIR", help="Tous les formats dans un répertoire")
    parser.add_argument("--start", metavar="YYYY-MM-DD", help="Début de période (inclus)")
    parser.add_argument("--end", metavar="YYYY-MM-DD", help="Fin de période (incluse)")
    parser.add_argument("--summary", action="store_true", help="Affiche le résumé texte")
    parser.add_argument("--decoder", metavar="PATH", help="Chemin du décodeur externe (dddparser)")
    parser.add_argument("--no-mock", action="store_true", help="Échoue si le décodeur est absent au lieu d'utiliser la carte de démonstration")
    parser.add_argument("-v", "--verbose", action="store_true", help="Sortie de debug")
    parser.add_argument("-q", "--quiet", action="store_true", help="Aucune sortie écran (fichiers uniquement)")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s"
    )

    for label, value in (("--start", args.start), ("--end", args.end)):
        if value:
            try:
                datetime.strptime(value, "%Y-%m-%d")
            except ValueError:
                parser.error(f"{label}: date invalide {value!r} (format attendu YYYY-MM-DD)")

    if not os.path.isfile(args.file):
        print(f"❌ Fichier introuvable: {args.file}", file=sys.stderr)
        return 1

    config = TachoConfig.from_env()
    if args.decoder:
        config.decoder_path = args.decoder
    if args.no_mock:
        config.allow_mock = False

    from tachydrive.infrastructure.repositories.decoder_card_repository import DecoderCardRepository
    from upload_service import UploadService

    service = UploadService(repository=DecoderCardRepository(config))
    # The user's file is not a temporary upload: keep it
    result = service.handle_upload(args.file, delete_after=False)

    if "error" in result:
        print(f"❌ {result['error']}: {result.get('details', '')}", file=sys.stderr)
        return 1

    from export_manager import ExportManager

    def resolve_path(val, ext, default_dir=None):
        if val == "auto":
            return ExportManager.default_path(result, ext, default_dir or config.export_dir)
        return val

    # --all mode
    if args.all is not None:
        out_dir = args.all if args.all != "auto" else config.export_dir
        os.makedirs(out_dir, exist_ok=True)
        args.json = resolve_path("auto", "json", out_dir)
        args.csv = resolve_path("auto", "csv", out_dir)
        args.excel = resolve_path("auto", "xlsx", out_dir)
        args.pdf = resolve_path("auto", "pdf", out_dir)

    filtered = filter_period(result, args.start, args.end)
    generated = []

    if args.json:
        json_path = resolve_path(args.json, "json")
        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(filtered, f, indent=2, ensure_ascii=False)
        generated.append(("JSON", json_path))

    if args.csv:
        csv_path = resolve_path(args.csv, "csv")
        try:
            ExportManager.export_to_csv(result, csv_path, args.start, args.end)
            generated.append(("CSV", csv_path))
        except ValueError as e:
            print(f"⚠️ CSV: {e}", file=sys.stderr)

    if args.excel:
        excel_path = resolve_path(args.excel, "xlsx")
        try:
            ExportManager.export_to_excel(result, excel_path, args.start, args.end)
            generated.append(("Excel", excel_path))
        except Exception as e:
            print(f"⚠️ Erreur génération Excel: {e}", file=sys.stderr)
            if args.verbose:
                import traceback
                traceback.print_exc()

    if args.pdf:
        pdf_path = resolve_path(args.pdf, "pdf")
        try:
            from export_pdf import generate_pdf_report
            generate_pdf_report(result, pdf_path, args.start, args.end)
            generated.append(("PDF", pdf_path))
        except Exception as e:
            print(f"⚠️ Erreur génération PDF: {e}", file=sys.stderr)
            if args.verbose:
                import traceback
                traceback.print_exc()

    if not args.quiet and (args.summary or not generated):
        print_summary(filtered, period_label(args.start, args.end))

    if not args.quiet and generated:
        print(f"\n📁 Fichiers générés:")
        for fmt, path in generated:
            size = os.path.getsize(path)
            print(f"   {fmt}: {path} ({format_size(size)})")

    return 0


def print_summary(data, period="Toutes les dates"):
    """Affiche un résumé compact à l'écran."""
    driver = data.get("driver", {})
    days = data.get("days", [])
    infractions = data.get("infractions", [])

    print("=" * 60)
    print("🚛 TACHYDRIVE - RÉSUMÉ")
    print("=" * 60)

    print(f"\n👤 Chauffeur: {driver.get('firstName', '')} {driver.get('name', '')}".rstrip())
    if driver.get("cardNumber"):
        print(f"   Carte: {driver['cardNumber']}")
    print(f"📅 Période: {period}")

    if not days:
        print("\nAucune activite trouvee dans le fichier")
    else:
        drive = sum(d["drivingHours"] for d in days)
        work = sum(d["otherWorkHours"] for d in days)
        avail = sum(d["availabilityHours"] for d in days)
        rest = sum(d["restHours"] for d in days)
        print(f"\n📊 Activités ({len(days)} jours):")
        print(f"   🟦 Conduite:     {drive:.2f}h")
        print(f"   ⬜ Autre travail: {work:.2f}h")
        print(f"   🟨 Disponible:   {avail:.2f}h")
        print(f"   🟩 Repos:        {rest:.2f}h")

    if infractions:
        print(f"\n⚠️ Infractions: {len(infractions)}")
        for inf in infractions[:5]:
            print(f"   • [{inf['severity']}] {inf.get('date') or '-'} {inf['description']}")
        if len(infractions) > 5:
            print(f"   ... et {len(infractions) - 5} autres")
    else:
        print("\n✅ Aucune infraction detectee")

    print("\n" + "=" * 60)


def format_size(bytes_val):
    for unit in ['B', 'KB', 'MB']:
        if bytes_val < 1024:
            return f"{bytes_val:.1f} {unit}"
        bytes_val /= 1024
    return f"{bytes_val:.1f} GB"


if __name__ == "__main__":
    sys.exit(main())
