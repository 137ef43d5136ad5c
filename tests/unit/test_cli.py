import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "apps" / "desktop"))
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))
sys.path.insert(0, str(ROOT / "installers" / "ninite"))

from devdash_app.cli import _snapshot_payload, build_parser, format_bytes
from devdash_ninite.cli import build_parser as build_ninite_parser
from devdash_telemetry.models import DashboardSnapshot, SystemInfo, VolumeUsage


class CliTests(unittest.TestCase):
    def test_run_command(self):
        parser = build_parser()
        args = parser.parse_args(["run"])
        self.assertEqual(args.command, "run")
        self.assertEqual(args.seconds, 0.0)
        self.assertEqual(args.interval, 1.0)

    def test_install_command(self):
        parser = build_parser()
        args = parser.parse_args(["install", "VLC", "7-Zip"])
        self.assertEqual(args.command, "install")
        self.assertEqual(args.apps, ["VLC", "7-Zip"])

    def test_settings_set_name(self):
        parser = build_parser()
        args = parser.parse_args(["settings", "set-name", "Ada"])
        self.assertEqual(args.settings_cmd, "set-name")
        self.assertEqual(args.name, "Ada")

    def test_snapshot_warmup(self):
        parser = build_parser()
        args = parser.parse_args(["snapshot", "--warmup", "0.5"])
        self.assertEqual(args.warmup, 0.5)

    def test_format_bytes(self):
        self.assertEqual(format_bytes(512), (512.0, "B"))
        self.assertEqual(format_bytes(2048), (2.0, "KB"))
        self.assertEqual(format_bytes(3 * 1024 ** 3), (3.0, "GB"))

    def test_snapshot_payload_formats_system_memory_and_storage(self):
        gib = 1024 ** 3
        snap = DashboardSnapshot(
            cpu_percent=12.0,
            memory_fraction=0.5,
            disks={"C:": 0.25},
            memory_total=16 * gib,
            memory_used=8 * gib,
            memory_free=8 * gib,
            volumes={"C:": VolumeUsage("C:\\", 512 * gib, 384 * gib)},
            system=SystemInfo("Windows", "11", "devbox", 3 * 3600 + 7 * 60, "Ryzen 7 5800X", 8, 16, 3800.0),
        )
        payload = _snapshot_payload(snap)
        self.assertEqual(
            payload["system"],
            {
                "os": "Windows 11",
                "hostname": "devbox",
                "uptime": "3 hours, 7 minutes",
                "cpu_model": "Ryzen 7 5800X",
                "physical_cores": 8,
                "threads": 16,
                "speed": "3.8 GHz",
            },
        )
        self.assertEqual(payload["memory"], {"total": "16.0 GB", "used": "8.0 GB", "free": "8.0 GB", "usage": "50.0%"})
        self.assertEqual(payload["storage"], {"C:": {"total": "512.0 GB", "free": "384.0 GB", "usage": "25.0%"}})
        self.assertNotIn("volumes", payload)
        self.assertNotIn("memory_total", payload)

    def test_snapshot_payload_before_first_poll(self):
        payload = _snapshot_payload(DashboardSnapshot(cpu_percent=0.0, memory_fraction=0.0))
        self.assertIsNone(payload["system"])
        self.assertEqual(payload["storage"], {})
        self.assertEqual(payload["memory"]["total"], "0.0 B")


class NiniteCliTests(unittest.TestCase):
    def test_install_flags(self):
        parser = build_ninite_parser()
        args = parser.parse_args(["install", "Chrome", "--no-install", "--dest", "downloads"])
        self.assertEqual(args.apps, ["Chrome"])
        self.assertTrue(args.no_install)
        self.assertEqual(args.dest, "downloads")

    def test_url_command(self):
        parser = build_ninite_parser()
        args = parser.parse_args(["url", "VLC"])
        self.assertEqual(args.command, "url")
        self.assertEqual(args.apps, ["VLC"])


if __name__ == "__main__":
    unittest.main()
