"""CLI for detecting apps and running the composed Ninite installer."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from .catalog import by_category, default_catalog
from .detection import InstallationDetector
from .pipeline import Failed, InstallerPipeline, NoAppsSelected, ProgressUpdate, StateChanged, drain


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="devdash-ninite", description="Detect and install common Windows apps via Ninite")
    sub = parser.add_subparsers(dest="command", required=True)

    url_cmd = sub.add_parser("url", help="Print the composed installer URL")
    url_cmd.add_argument("apps", nargs="*", help="Catalog app names")

    sub.add_parser("detect", help="Report which catalog apps are installed")

    install_cmd = sub.add_parser("install", help="Download and run the installer")
    install_cmd.add_argument("apps", nargs="*", help="Catalog app names")
    install_cmd.add_argument("--dest", default=None, help="Directory for the downloaded installer")
    install_cmd.add_argument("--no-install", action="store_true", help="Print the URL without downloading")
    return parser


def _detect() -> dict[str, list[dict[str, object]]]:
    catalog = default_catalog()
    InstallationDetector().detect_all(catalog)
    return {
        category: [{"name": a.name, "id": a.installer_id, "installed": a.installed} for a in apps]
        for category, apps in by_category(catalog)
    }


def _install(args: argparse.Namespace) -> int:
    catalog = default_catalog()
    artifact = Path(args.dest).expanduser().resolve() / "ninite.exe" if args.dest else None
    pipeline = InstallerPipeline(catalog, artifact_path=artifact)

    if not args.apps:
        raise NoAppsSelected()
    if args.no_install:
        print(json.dumps({"url": pipeline.build_url(args.apps), "install": False}, indent=2))
        return 0

    ok = pipeline.run(args.apps)
    for message in drain(pipeline.channel):
        if isinstance(message, ProgressUpdate):
            print(f"progress {message.fraction * 100:.0f}%")
        elif isinstance(message, StateChanged):
            print(f"state {message.state}")
        elif isinstance(message, Failed):
            print(f"error {message.message}")
    return 0 if ok else 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "url":
        pipeline = InstallerPipeline(default_catalog())
        print(pipeline.build_url(args.apps))
        return 0
    if args.command == "detect":
        print(json.dumps(_detect(), indent=2))
        return 0
    try:
        return _install(args)
    except NoAppsSelected as exc:
        print(str(exc))
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
