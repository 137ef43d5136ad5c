import fnmatch
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "installers" / "ninite"))

from devdash_ninite.catalog import AppDescriptor
from devdash_ninite.detection import (
    UNINSTALL_SUBTREES,
    InstallationDetector,
    RegistryRoot,
    RegistryView,
    UninstallEntry,
)


class FakeProbes:
    def __init__(self, files=(), dirs=(), keys=(), uninstall=None):
        self.files = set(files)
        self.dirs = set(dirs)
        self.keys = set(keys)
        self.uninstall = uninstall or {}
        self.key_queries = []

    def key_exists(self, root, view, path):
        self.key_queries.append((root, view, path))
        return (root, view, path) in self.keys

    def glob(self, pattern):
        return sorted(p for p in self.files | self.dirs if fnmatch.fnmatchcase(p, pattern))

    def is_file(self, path):
        return path in self.files

    def is_dir(self, path):
        return path in self.dirs

    def uninstall_entries(self, subtree):
        return list(self.uninstall.get(subtree, []))


def _foo(paths=("C:\\Apps\\Foo\\foo.exe",), registry=()):
    return AppDescriptor(
        name="Foo",
        category="Other",
        installer_id="foo",
        registry_probes=tuple(registry),
        path_probes=tuple(paths),
    )


class DetectionTests(unittest.TestCase):
    def test_file_signal_flips_state(self):
        probes = FakeProbes(files={"C:\\Apps\\Foo\\foo.exe"})
        detector = InstallationDetector(probes, username="alice")
        app = _foo()

        self.assertTrue(detector.detect(app))
        self.assertTrue(app.installed)

        probes.files.clear()
        self.assertTrue(detector.detect(app))
        self.assertFalse(app.installed)

    def test_detect_is_idempotent(self):
        probes = FakeProbes(files={"C:\\Apps\\Foo\\foo.exe"})
        detector = InstallationDetector(probes, username="alice")
        app = _foo()
        with self.assertLogs("devdash.detector", level="INFO") as logs:
            detector.detect(app)
        self.assertEqual(len(logs.records), 1)

        with self.assertNoLogs("devdash.detector", level="INFO"):
            self.assertFalse(detector.detect(app))
        self.assertTrue(app.installed)

    def test_username_substitution(self):
        pattern = "C:\\Users\\%USERNAME%\\AppData\\Local\\Foo\\foo.exe"
        probes = FakeProbes(files={"C:\\Users\\alice\\AppData\\Local\\Foo\\foo.exe"})
        detector = InstallationDetector(probes, username="alice")
        self.assertTrue(detector.file_signal(_foo(paths=[pattern])))
        self.assertFalse(InstallationDetector(probes, username="bob").file_signal(_foo(paths=[pattern])))

    def test_glob_accepts_only_files(self):
        pattern = "C:\\Apps\\Foo *\\foo.exe"
        detector = InstallationDetector(FakeProbes(dirs={"C:\\Apps\\Foo 2\\foo.exe"}), username="alice")
        self.assertFalse(detector.file_signal(_foo(paths=[pattern])))

        detector = InstallationDetector(FakeProbes(files={"C:\\Apps\\Foo 2\\foo.exe"}), username="alice")
        self.assertTrue(detector.file_signal(_foo(paths=[pattern])))

    def test_glob_error_is_logged_and_skipped(self):
        class BrokenGlob(FakeProbes):
            def glob(self, pattern):
                raise OSError("access denied")

        probes = BrokenGlob(files={"C:\\Apps\\Foo\\foo.exe"})
        detector = InstallationDetector(probes, username="alice")
        app = _foo(paths=["C:\\Apps\\*\\foo.exe", "C:\\Apps\\Foo\\foo.exe"])
        with self.assertLogs("devdash.detector", level="WARNING"):
            self.assertTrue(detector.file_signal(app))

    def test_registry_signal_checks_every_view_and_root(self):
        key = "SOFTWARE\\Foo"
        probes = FakeProbes(keys={(RegistryRoot.USER, RegistryView.BITS_32, key)})
        detector = InstallationDetector(probes, username="alice")
        self.assertTrue(detector.registry_signal(_foo(registry=[key])))

        empty = FakeProbes()
        InstallationDetector(empty, username="alice").registry_signal(_foo(registry=[key]))
        self.assertEqual(len(empty.key_queries), 4)

    def test_registry_hit_alone_is_not_installed(self):
        key = "SOFTWARE\\Foo"
        probes = FakeProbes(keys={(RegistryRoot.MACHINE, RegistryView.BITS_64, key)})
        detector = InstallationDetector(probes, username="alice")
        app = _foo(registry=[key])
        self.assertFalse(detector.detect(app))
        self.assertFalse(app.installed)
        self.assertTrue(detector.signals(app).registry)

    def test_uninstall_signal_requires_existing_location(self):
        subtree = UNINSTALL_SUBTREES[0]
        probes = FakeProbes(
            uninstall={subtree: [UninstallEntry("Foo Suite 2.0", "C:\\Apps\\Foo")]},
        )
        detector = InstallationDetector(probes, username="alice")
        self.assertFalse(detector.uninstall_signal(_foo()))

        probes.dirs.add("C:\\Apps\\Foo")
        self.assertTrue(detector.uninstall_signal(_foo()))

    def test_uninstall_scan_continues_past_stale_entry(self):
        probes = FakeProbes(
            uninstall={
                UNINSTALL_SUBTREES[0]: [UninstallEntry("Foo (old)", "D:\\Gone")],
                UNINSTALL_SUBTREES[1]: [UninstallEntry("foo", None)],
            },
        )
        detector = InstallationDetector(probes, username="alice")
        self.assertTrue(detector.uninstall_signal(_foo()))

    def test_registry_errors_count_as_not_found(self):
        class DeniedRegistry(FakeProbes):
            def key_exists(self, root, view, path):
                raise PermissionError("access denied")

        detector = InstallationDetector(DeniedRegistry(), username="alice")
        self.assertFalse(detector.registry_signal(_foo(registry=["SOFTWARE\\Foo"])))

    def test_unreadable_uninstall_subtree_is_skipped(self):
        class HalfReadable(FakeProbes):
            def uninstall_entries(self, subtree):
                if subtree == UNINSTALL_SUBTREES[0]:
                    raise OSError("subtree missing")
                return super().uninstall_entries(subtree)

        probes = HalfReadable()
        detector = InstallationDetector(probes, username="alice")
        self.assertFalse(detector.uninstall_signal(_foo()))

        probes.uninstall[UNINSTALL_SUBTREES[1]] = [UninstallEntry("Foo", None)]
        self.assertTrue(detector.uninstall_signal(_foo()))

    def test_registry_outage_does_not_break_detect(self):
        class Broken(FakeProbes):
            def key_exists(self, root, view, path):
                raise OSError("registry unavailable")

            def uninstall_entries(self, subtree):
                raise OSError("registry unavailable")

        detector = InstallationDetector(Broken(files={"C:\\Apps\\Foo\\foo.exe"}), username="alice")
        app = _foo(registry=["SOFTWARE\\Foo"])
        self.assertTrue(detector.detect(app))
        signals = detector.signals(app)
        self.assertEqual((signals.registry, signals.file, signals.uninstall), (False, True, False))

    def test_detect_all_reports_changed_names(self):
        probes = FakeProbes(files={"C:\\Apps\\Foo\\foo.exe"})
        detector = InstallationDetector(probes, username="alice")
        bar = AppDescriptor("Bar", "Other", "bar", path_probes=("C:\\Apps\\Bar\\bar.exe",))
        catalog = [_foo(), bar]
        self.assertEqual(detector.detect_all(catalog), ["Foo"])
        self.assertEqual(detector.detect_all(catalog), [])


if __name__ == "__main__":
    unittest.main()
