import argparse
import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .client import LivingAppsClient
from .config import get_config
from .dashboard import DashboardData
from .env import load_env
from .errors import ExtractionError, StorageError
from .extraction import PhotoExtractor
from .formatters import format_currency, format_date
from .logger import get_logger
from .merge import name_extractor_for
from .matching import resolve_lookup
from .models import APPLOOKUP, COLLECTIONS, KURSE, app_id_for, field_specs
from .overview import STATUS_FILTERS, STATUS_LABELS, enrollments_for, fill_percent, filter_kurse, kurs_status, summarize
from .references import create_record_url, extract_record_id
from .scan import PhotoScanner
from .schema import coerce_value, validate_fields
from .store import SqlRecordStore


def build_backend(args: argparse.Namespace):
    if args.backend == "sqlite":
        return SqlRecordStore(Path(args.db))
    return LivingAppsClient(base_url=args.base_url, api_key=args.api_key)


def load_dashboard(args: argparse.Namespace) -> DashboardData:
    data = DashboardData(build_backend(args))
    if not data.load():
        raise SystemExit(f"Failed to load data: {data.error}. Run the command again to retry.")
    return data


def parse_field_args(collection: str, pairs: Optional[List[str]], data: DashboardData) -> Dict[str, Any]:
    """
    Turn repeated --field name=value options into typed draft fields.

    Lookup fields take a record id, a reference URL, or a name that is
    matched against the loaded records.
    """
    specs = field_specs(collection)
    fields: Dict[str, Any] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise SystemExit(f"Invalid --field '{pair}', expected name=value")
        name, raw = (p.strip() for p in pair.split("=", 1))
        spec = specs.get(name)
        if spec is None:
            raise SystemExit(f"Unknown field for {collection}: {name}")
        if raw == "":
            fields[name] = None
            continue
        if spec.kind == APPLOOKUP:
            app_id = app_id_for(spec.target)
            record_id = extract_record_id(raw, app_id)
            if record_id:
                fields[name] = create_record_url(app_id, record_id)
                continue
            reference = resolve_lookup(raw, data.records(spec.target), name_extractor_for(spec.target), app_id)
            if reference is None:
                raise SystemExit(f"No {spec.target} record matches '{raw}'")
            fields[name] = reference
            continue
        value = coerce_value(spec, raw)
        if value is None:
            raise SystemExit(f"Invalid value for {name}: {raw!r}")
        fields[name] = value
    return fields


def _check_fields(collection: str, fields: Dict[str, Any]) -> None:
    errors = validate_fields(collection, fields)
    if errors:
        print("Invalid:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)


def _print_draft(collection: str, fields: Dict[str, Any], data: DashboardData) -> None:
    for name, spec in field_specs(collection).items():
        value = fields.get(name)
        if spec.kind == APPLOOKUP and value:
            target = data.table(spec.target).get(extract_record_id(value) or "")
            shown = name_extractor_for(spec.target)(target) if target else f"{value} (unresolved)"
        else:
            shown = "" if value is None else value
        print(f"  {spec.label}: {shown}")


def cmd_overview(args: argparse.Namespace) -> None:
    data = load_dashboard(args)
    today = date.fromisoformat(args.today) if args.today else date.today()
    kurse = data.enriched_kurse()
    anmeldungen = data.anmeldungen
    stats = summarize(data.kurse, anmeldungen, data.dozenten, data.table(KURSE), today)

    print(f"Active courses: {stats.active_kurse} of {stats.total_kurse}")
    print(f"Enrollments: {stats.anmeldungen} ({stats.paid} paid)")
    print(f"Instructors: {stats.dozenten}")
    print(f"Revenue: {format_currency(stats.revenue)}")
    print(f"\n{STATUS_LABELS[args.status]}:")

    shown = filter_kurse(kurse, anmeldungen, args.status, today)
    if not shown:
        print("  No courses found.")
        return
    for k in shown:
        s = kurs_status(k, anmeldungen, today)
        print(f"\n[{s.label}] {k.fields.get('titel') or '(Kein Titel)'}  ({k.record_id})")
        if k.dozent_name:
            print(f"  Dozent: {k.dozent_name}")
        if k.raum_name:
            print(f"  Raum: {k.raum_name}")
        dates = format_date(k.fields.get("startdatum"))
        if k.fields.get("enddatum"):
            dates += f" -> {format_date(k.fields.get('enddatum'))}"
        print(f"  Zeitraum: {dates}")
        if s.max > 0:
            print(f"  Anmeldungen: {s.count} / {s.max} ({fill_percent(s.count, s.max):.0f}%)")
        if k.fields.get("preis") is not None:
            print(f"  Preis: {format_currency(k.fields.get('preis'))}")


def cmd_show_kurs(args: argparse.Namespace) -> None:
    data = load_dashboard(args)
    kurs = next((k for k in data.enriched_kurse() if k.record_id == args.id), None)
    if kurs is None:
        raise SystemExit(f"Course not found: {args.id}")
    enrolled = enrollments_for(kurs.record_id, data.enriched_anmeldungen())
    limit = kurs.fields.get("maximale_teilnehmer")
    print(kurs.fields.get("titel") or "(Kein Titel)")
    print(f"  {len(enrolled)} Anmeldungen" + (f" / {limit} max." if limit else ""))
    if kurs.dozent_name:
        print(f"  Dozent: {kurs.dozent_name}")
    if kurs.raum_name:
        print(f"  Raum: {kurs.raum_name}")
    for a in enrolled:
        paid = "bezahlt" if a.fields.get("bezahlt") else "offen"
        registered = format_date(a.fields.get("anmeldedatum"))
        print(f"  - {a.teilnehmer_name or '(Kein Name)'}  {registered}  [{paid}]  ({a.record_id})")


def cmd_list(args: argparse.Namespace) -> None:
    data = load_dashboard(args)
    records = data.records(args.collection)
    if not records:
        print(f"No records in {args.collection}.")
        return
    print(f"Found {len(records)} records in {args.collection}:\n")
    for r in records:
        print(f"ID: {r.record_id}")
        _print_draft(args.collection, dict(r.fields), data)
        print()


def cmd_create(args: argparse.Namespace) -> None:
    data = load_dashboard(args)
    fields = parse_field_args(args.collection, args.field, data)
    _check_fields(args.collection, fields)
    try:
        record = data.create(args.collection, fields)
    except StorageError as e:
        raise SystemExit(f"Create failed: {e}")
    print(f"Created: {record.record_id}")


def cmd_update(args: argparse.Namespace) -> None:
    data = load_dashboard(args)
    fields = parse_field_args(args.collection, args.field, data)
    _check_fields(args.collection, fields)
    try:
        data.update(args.collection, args.id, fields)
    except StorageError as e:
        raise SystemExit(f"Update failed: {e}")
    print(f"Updated: {args.id}")


def cmd_delete(args: argparse.Namespace) -> None:
    data = load_dashboard(args)
    try:
        data.delete(args.collection, args.id)
    except StorageError as e:
        raise SystemExit(f"Delete failed: {e}")
    print(f"Deleted: {args.id}")


def cmd_scan(args: argparse.Namespace) -> None:
    data = load_dashboard(args)
    collection = args.collection

    draft: Dict[str, Any] = {}
    if args.record_id:
        existing = data.table(collection).get(args.record_id)
        if existing is None:
            raise SystemExit(f"Record not found in {collection}: {args.record_id}")
        draft = dict(existing.fields)
    draft.update(parse_field_args(collection, args.field, data))

    try:
        scanner = PhotoScanner(PhotoExtractor(model=args.model))
    except ExtractionError as e:
        raise SystemExit(str(e))

    result = scanner.scan(collection, draft, Path(args.image), data.records_by_collection)
    if not result.success:
        print(f"Scan failed: {result.error}")
        print("Draft unchanged:")
        _print_draft(collection, result.fields, data)
        raise SystemExit(1)

    print("Draft:")
    _print_draft(collection, result.fields, data)
    if args.json:
        print(json.dumps(result.fields, indent=2, ensure_ascii=False))
    if not args.submit:
        return

    _check_fields(collection, result.fields)
    try:
        if args.record_id:
            data.update(collection, args.record_id, result.fields)
            print(f"Updated: {args.record_id}")
        else:
            record = data.create(collection, result.fields)
            print(f"Created: {record.record_id}")
    except StorageError as e:
        raise SystemExit(f"Submit failed: {e}")


def main():
    # Load .env if present (LIVINGAPPS_*, OPENAI_API_KEY, KV_*)
    load_env()
    settings = get_config()
    parser = argparse.ArgumentParser(prog="kursverwaltung", description="Kursverwaltung: courses, instructors, rooms and enrollments")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--backend", choices=["http", "sqlite"], default="http", help="Record storage (default: http)")
    parser.add_argument("--db", default="data/kursverwaltung.db", help="SQLite file for --backend sqlite (default: data/kursverwaltung.db)")
    parser.add_argument("--base-url", help="Record API base URL (or set LIVINGAPPS_BASE_URL)")
    parser.add_argument("--api-key", help="Record API key (or set LIVINGAPPS_API_KEY)")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command")
    ovw = subparsers.add_parser("overview", help="Show statistics and course cards")
    ovw.add_argument("--status", choices=list(STATUS_FILTERS), default="all", help="Filter courses by status")
    ovw.add_argument("--today", help="Reference date YYYY-MM-DD (default: today)")
    ovw.set_defaults(func=cmd_overview)

    shw = subparsers.add_parser("show-kurs", help="Show a course with its enrollments")
    shw.add_argument("id", help="Course record id")
    shw.set_defaults(func=cmd_show_kurs)

    lst = subparsers.add_parser("list", help="List all records of a collection")
    lst.add_argument("collection", choices=COLLECTIONS)
    lst.set_defaults(func=cmd_list)

    crt = subparsers.add_parser("create", help="Create a record")
    crt.add_argument("collection", choices=COLLECTIONS)
    crt.add_argument("--field", action="append", help="Field as name=value (repeatable)")
    crt.set_defaults(func=cmd_create)

    upd = subparsers.add_parser("update", help="Update fields of a record")
    upd.add_argument("collection", choices=COLLECTIONS)
    upd.add_argument("id", help="Record id")
    upd.add_argument("--field", action="append", help="Field as name=value (repeatable)")
    upd.set_defaults(func=cmd_update)

    dlt = subparsers.add_parser("delete", help="Delete a record")
    dlt.add_argument("collection", choices=COLLECTIONS)
    dlt.add_argument("id", help="Record id")
    dlt.set_defaults(func=cmd_delete)

    scn = subparsers.add_parser("scan", help="Pre-fill a record from a photographed document")
    scn.add_argument("collection", choices=COLLECTIONS)
    scn.add_argument("--image", required=True, help="Path to the photo")
    scn.add_argument("--record-id", help="Edit this record instead of creating a new one")
    scn.add_argument("--field", action="append", help="Field entered before the scan, name=value (repeatable)")
    scn.add_argument("--model", help="Vision model (or set KV_VISION_MODEL)")
    scn.add_argument("--json", action="store_true", help="Also print the draft as JSON")
    scn.add_argument("--submit", action="store_true", help="Save the draft after a successful scan")
    scn.set_defaults(func=cmd_scan)

    args = parser.parse_args()

    if args.version:
        print(__version__)
        return

    get_logger().set_level(args.log_level)

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
