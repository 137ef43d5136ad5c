"""CLI entrypoints for DevDash telemetry, app detection, and installs."""

from __future__ import annotations

import argparse
import getpass
import json
import time
from dataclasses import asdict

from devdash_core import display_name, load_config, save_config
from devdash_core.logging_setup import configure_logging, install_crash_hooks
from devdash_ninite import InstallerPhase, NoAppsSelected, by_category
from devdash_telemetry import DashboardSnapshot, GpuProbe, SystemInfo

from .controller import DashboardController, build_controller


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def format_bytes(num: float) -> tuple[float, str]:
    value = float(num)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024.0:
            return value, unit
        value /= 1024.0
    return value, "TB"


def _size(num: float) -> str:
    return "%.1f %s" % format_bytes(num)


def _system_payload(info: SystemInfo | None) -> dict[str, object] | None:
    if info is None:
        return None
    hours, minutes = info.uptime_hm
    return {
        "os": f"{info.os_name} {info.os_version}".strip(),
        "hostname": info.hostname,
        "uptime": f"{hours} hours, {minutes} minutes",
        "cpu_model": info.cpu_brand,
        "physical_cores": info.physical_cores or 0,
        "threads": info.threads,
        "speed": f"{info.cpu_freq_mhz / 1000.0:.1f} GHz" if info.cpu_freq_mhz else None,
    }


def _snapshot_payload(snap: DashboardSnapshot) -> dict[str, object]:
    payload = asdict(snap)
    payload["system"] = _system_payload(snap.system)
    payload["memory"] = {
        "total": _size(snap.memory_total),
        "used": _size(snap.memory_used),
        "free": _size(snap.memory_free),
        "usage": f"{snap.memory_fraction * 100:.1f}%",
    }
    payload["storage"] = {
        drive: {
            "total": _size(volume.total_bytes),
            "free": _size(volume.available_bytes),
            "usage": f"{snap.disks.get(drive, volume.used_fraction) * 100:.1f}%",
        }
        for drive, volume in snap.volumes.items()
    }
    for key in ("volumes", "memory_total", "memory_used", "memory_free"):
        payload.pop(key, None)
    payload["network"] = [
        {
            "name": nic.name,
            "down": "%.1f %s/s" % format_bytes(nic.recv_rate),
            "up": "%.1f %s/s" % format_bytes(nic.sent_rate),
            "received": "%.1f %s" % format_bytes(nic.recv_total),
            "sent": "%.1f %s" % format_bytes(nic.sent_total),
        }
        for nic in snap.network
    ]
    return payload


def _pump(controller: DashboardController, seconds: float, frame_s: float = 1.0 / 60.0) -> None:
    deadline = time.monotonic() + seconds
    while time.monotonic() < deadline:
        controller.tick()
        time.sleep(frame_s)


def cmd_run(args: argparse.Namespace) -> int:
    install_crash_hooks()
    cfg = load_config()
    controller = build_controller(cfg)
    user = display_name(cfg, getpass.getuser())
    deadline = None if args.seconds <= 0 else time.monotonic() + args.seconds

    try:
        while deadline is None or time.monotonic() < deadline:
            _pump(controller, args.interval)
            payload = _snapshot_payload(controller.snapshot())
            payload["user"] = user
            payload["installer_running"] = controller.installer_running
            print(json.dumps(payload, sort_keys=True, default=str), flush=True)
    except KeyboardInterrupt:
        pass
    return 0


def cmd_snapshot(args: argparse.Namespace) -> int:
    controller = build_controller(load_config())
    _pump(controller, args.warmup)
    _print_json(_snapshot_payload(controller.snapshot()))
    return 0


def cmd_gpu(_args: argparse.Namespace) -> int:
    probe = GpuProbe.detect()
    snap = probe.refresh()
    _print_json({"source": probe.kind.value, "gpu": asdict(snap) if snap else None})
    return 0


def cmd_apps(_args: argparse.Namespace) -> int:
    controller = build_controller(load_config())
    controller.check_installations()
    _print_json(
        {
            "installer_running": controller.installer_running,
            "categories": {
                category: [{"name": a.name, "installed": a.installed} for a in apps]
                for category, apps in by_category(controller.catalog)
            },
        }
    )
    return 0


def cmd_install(args: argparse.Namespace) -> int:
    controller = build_controller(load_config())
    controller.refresh_installations()
    for name in args.apps:
        if not controller.select(name):
            print(f"skipping {name}: unknown or already installed")

    try:
        controller.install()
    except NoAppsSelected as exc:
        print(str(exc))
        return 2

    last = None
    while True:
        controller.drain_messages()
        status = (str(controller.state), round(controller.progress, 2))
        if status != last:
            print(f"{status[0]} {status[1] * 100:.0f}%", flush=True)
            last = status
        if not controller.busy or controller.state.phase is InstallerPhase.ERROR:
            break
        time.sleep(0.1)

    return 0 if controller.state.is_idle else 1


def cmd_settings(args: argparse.Namespace) -> int:
    cfg = load_config()
    if args.settings_cmd == "set-name":
        cfg.display.custom_username = args.name.strip() or None
        save_config(cfg)
    elif args.settings_cmd == "clear-name":
        cfg.display.custom_username = None
        save_config(cfg)
    _print_json(asdict(cfg))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="devdash", description="DevDash system dashboard and app installer")
    sub = parser.add_subparsers(dest="command", required=True)

    run_cmd = sub.add_parser("run", help="Poll telemetry and print smoothed snapshots")
    run_cmd.add_argument("--seconds", type=float, default=0.0, help="Stop after N seconds (0 = until Ctrl+C)")
    run_cmd.add_argument("--interval", type=float, default=1.0, help="Seconds between printed snapshots")
    run_cmd.set_defaults(func=cmd_run)

    snap_cmd = sub.add_parser("snapshot", help="Print one snapshot after a warm-up period")
    snap_cmd.add_argument("--warmup", type=float, default=2.0)
    snap_cmd.set_defaults(func=cmd_snapshot)

    gpu_cmd = sub.add_parser("gpu", help="Show the detected GPU source")
    gpu_cmd.set_defaults(func=cmd_gpu)

    apps_cmd = sub.add_parser("apps", help="List catalog apps with installation status")
    apps_cmd.set_defaults(func=cmd_apps)

    install_cmd = sub.add_parser("install", help="Install catalog apps through Ninite")
    install_cmd.add_argument("apps", nargs="*", help="Catalog app names, e.g. VLC 7-Zip")
    install_cmd.set_defaults(func=cmd_install)

    settings_cmd = sub.add_parser("settings", help="Show or edit persisted settings")
    settings_sub = settings_cmd.add_subparsers(dest="settings_cmd", required=True)
    settings_sub.add_parser("show", help="Print current settings")
    set_name = settings_sub.add_parser("set-name", help="Override the display name")
    set_name.add_argument("name")
    settings_sub.add_parser("clear-name", help="Remove the display-name override")
    settings_cmd.set_defaults(func=cmd_settings)

    return parser


def main(argv: list[str] | None = None) -> int:
    cfg = load_config()
    configure_logging(keep_files=cfg.diagnostics.keep_log_files, console=False)
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
