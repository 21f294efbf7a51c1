"""Region orchestrator: discover, repair, upload, build and publish city by city.

Usage:
    clinic-discovery discover south-florida          # next queued city
    clinic-discovery discover south-florida --all    # drain the queue
    clinic-discovery status [--region south-florida]
    clinic-discovery requeue south-florida [--city Naples]
"""

from __future__ import annotations

import argparse
import logging
import os
import re
import subprocess
import sys
import time
from datetime import date
from typing import Callable, List, Optional

from clinic_discovery.core.assets import sync_assets
from clinic_discovery.core.config import ConfigError, Settings, get_settings
from clinic_discovery.core.ledger import (
    LedgerError,
    get_region,
    load_ledger,
    mark_done,
    mark_failed,
    mark_running,
    queued_cities,
    requeue,
    save_ledger,
)
from clinic_discovery.core.store import repair_clinic_files
from clinic_discovery.jobs.discover_city import SUMMARY_PREFIX
from clinic_discovery.schemas import CityEntry, LocationsLedger
from clinic_discovery.vendors.blob_store import BlobUploader
from clinic_discovery.vendors.site_builder import SiteBuilder

logger = logging.getLogger(__name__)

_SUMMARY_RE = re.compile(rf"{re.escape(SUMMARY_PREFIX)}\s*(\d+)")

CityRunner = Callable[[CityEntry], int]


class CityRunError(RuntimeError):
    """A city could not be discovered, built, or verified."""


def run_discovery_subprocess(entry: CityEntry, settings: Settings) -> int:
    """Run the single-city job in a child process bounded by ``city_timeout``."""
    argv = [
        sys.executable,
        "-m",
        "clinic_discovery.jobs.discover_city",
        "--city",
        entry.city,
        "--state",
        entry.state,
    ]
    env = {**os.environ, "SITE_ROOT": str(settings.site_root)}
    try:
        completed = subprocess.run(
            argv,
            cwd=settings.site_root,
            env=env,
            capture_output=True,
            text=True,
            timeout=settings.city_timeout,
            check=True,
        )
    except subprocess.TimeoutExpired as exc:
        raise CityRunError(f"Discovery timed out after {settings.city_timeout}s") from exc
    except subprocess.CalledProcessError as exc:
        stderr_lines = (exc.stderr or "").strip().splitlines()
        detail = stderr_lines[-1] if stderr_lines else "no output"
        raise CityRunError(f"Discovery exited with {exc.returncode}: {detail}") from exc

    print(completed.stdout, end="")
    match = _SUMMARY_RE.search(completed.stdout or "")
    if not match:
        logger.warning("Discovery output for %s had no summary line; assuming 0 clinics", entry.city)
        return 0
    return int(match.group(1))


class RegionOrchestrator:
    """Drives queued cities through discovery, repair, asset sync, build and publish."""

    def __init__(
        self,
        settings: Settings,
        *,
        run_city: Optional[CityRunner] = None,
        builder: Optional[SiteBuilder] = None,
        uploader: Optional[BlobUploader] = None,
        sleep: Callable[[float], None] = time.sleep,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.settings = settings
        self.run_city = run_city or (lambda entry: run_discovery_subprocess(entry, settings))
        self.builder = builder or SiteBuilder(
            settings.site_root,
            build_command=settings.build_command,
            deploy_command=settings.deploy_command,
            git_remote=settings.git_remote,
            git_branch=settings.git_branch,
        )
        self.uploader = uploader
        self.sleep = sleep
        self.today = today or date.today

    def _save(self, ledger: LocationsLedger) -> None:
        save_ledger(self.settings.ledger_path, ledger)

    def _verify_build(self) -> None:
        result = self.builder.build()
        if result.ok:
            return
        logger.warning("Build failed; repairing clinic files and retrying once")
        repair_clinic_files(self.settings.clinics_dir)
        result = self.builder.build()
        if not result.ok:
            raise CityRunError(f"Build failed after fix attempt: {result.output.strip()}")

    def process_city(self, ledger: LocationsLedger, entry: CityEntry) -> bool:
        """Run one city to a terminal state; returns ``True`` when it is done."""
        logger.info("Processing %s, %s", entry.city, entry.state)
        mark_running(entry)
        self._save(ledger)

        try:
            clinics = self.run_city(entry)
            repair_clinic_files(self.settings.clinics_dir)
            uploaded = sync_assets(self.settings, self.uploader)
            logger.info("%d new images uploaded", uploaded)
            self._verify_build()
        except Exception as exc:  # noqa: BLE001
            mark_failed(entry, str(exc) or exc.__class__.__name__)
            self._save(ledger)
            logger.error("Failed: %s, %s: %s", entry.city, entry.state, exc)
            return False

        mark_done(entry, clinics, self.today())
        self._save(ledger)

        message = f"feat(clinics): add {entry.city} {entry.state} clinics ({clinics} found)"
        if not self.builder.publish(message).ok:
            logger.warning("Publish failed for %s; data is saved, deploy manually", entry.city)

        logger.info("Done: %s, %s: %d clinics", entry.city, entry.state, clinics)
        return True

    def run(self, region_id: str, *, process_all: bool = False) -> List[CityEntry]:
        """Process the next queued city, or every queued city when ``process_all``.

        Stops at the first failure. Returns the entries that were attempted.
        """
        ledger = load_ledger(self.settings.ledger_path)
        region = get_region(ledger, region_id)
        queued = queued_cities(region)
        if not queued:
            logger.info("All cities in %s are processed", region.name)
            return []

        to_process = queued if process_all else queued[:1]
        logger.info("Processing %d city(s) in %s", len(to_process), region.name)

        attempted: List[CityEntry] = []
        for index, entry in enumerate(to_process):
            attempted.append(entry)
            if not self.process_city(ledger, entry):
                remaining = len(to_process) - index - 1
                if remaining:
                    logger.warning("Stopping batch; %d queued city(s) left untouched", remaining)
                break
            if index < len(to_process) - 1:
                logger.info("Pausing %.0fs before next city", self.settings.city_pause)
                self.sleep(self.settings.city_pause)
        return attempted


# ---------- Status ----------

_ICONS = {"done": "[done]", "running": "[running]", "failed": "[failed]", "queued": "[queued]"}


def format_status(ledger: LocationsLedger, region_filter: Optional[str] = None) -> str:
    lines: List[str] = ["Clinic discovery status", ""]
    totals = {"done": 0, "queued": 0, "failed": 0, "running": 0}
    total_clinics = 0

    for region_id, region in ledger.regions.items():
        if region_filter and region_id != region_filter:
            continue
        done = [c for c in region.cities if c.status == "done"]
        clinic_count = sum(c.clinics or 0 for c in done)
        for entry in region.cities:
            totals[entry.status] += 1
        total_clinics += clinic_count

        lines.append(f"{region.name} ({region_id})")
        lines.append(f"  Done: {len(done)}/{len(region.cities)} | Clinics: {clinic_count}")
        for entry in region.cities:
            if entry.status == "done":
                info = f"{entry.clinics or 0} clinics ({entry.date})"
            elif entry.status == "failed":
                info = f"Error: {entry.error}"
            else:
                info = entry.status
            lines.append(f"  {_ICONS[entry.status]:<10} {entry.city}, {entry.state} - {info}")
        lines.append("")

    lines.append(
        "Total: {done} done, {queued} queued, {failed} failed, {running} running, {clinics} clinics".format(
            clinics=total_clinics, **totals
        )
    )
    return "\n".join(lines)


# ---------- CLI ----------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clinic-discovery", description="Region-based clinic discovery")
    commands = parser.add_subparsers(dest="command", required=True)

    discover = commands.add_parser("discover", help="Process the next queued city in a region")
    discover.add_argument("region", help="Region id from the ledger, e.g. south-florida")
    discover.add_argument("--all", dest="process_all", action="store_true", help="Process every queued city")

    status = commands.add_parser("status", help="Show per-city status")
    status.add_argument("--region", help="Only show this region")

    reset = commands.add_parser("requeue", help="Reset failed/running cities to queued")
    reset.add_argument("region", help="Region id from the ledger")
    reset.add_argument("--city", help="Only reset this city")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)
    settings = get_settings()

    try:
        ledger = load_ledger(settings.ledger_path)
        if args.command == "status":
            if args.region:
                get_region(ledger, args.region)
            print(format_status(ledger, args.region))
            return

        region = get_region(ledger, args.region)
        if args.command == "requeue":
            reset = requeue(region, args.city)
            save_ledger(settings.ledger_path, ledger)
            print(f"Requeued {len(reset)} city(s) in {region.name}")
            return

        settings.require_google_api_key()
        RegionOrchestrator(settings).run(args.region, process_all=args.process_all)
        print(format_status(load_ledger(settings.ledger_path), args.region))
    except LedgerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc


if __name__ == "__main__":
    main()
