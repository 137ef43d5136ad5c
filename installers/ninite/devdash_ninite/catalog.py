"""Static catalog of Ninite-installable applications and how to find them."""

from __future__ import annotations

from dataclasses import dataclass, field

USERNAME_TOKEN = "%USERNAME%"

CATEGORIES = (
    "Web Browsers",
    "Messaging",
    "Media",
    "Imaging",
    "Documents",
    "Developer Tools",
    "Other",
    "Compression",
    "File Sharing",
)

_APP_PATHS = "SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\App Paths\\"
_UNINSTALL = "SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Uninstall\\"
_UNINSTALL_WOW64 = "SOFTWARE\\WOW6432Node\\Microsoft\\Windows\\CurrentVersion\\Uninstall\\"
_PF = "C:\\Program Files\\"
_PF86 = "C:\\Program Files (x86)\\"
_LOCAL = "C:\\Users\\%USERNAME%\\AppData\\Local\\"
_ROAMING = "C:\\Users\\%USERNAME%\\AppData\\Roaming\\"


@dataclass
class AppDescriptor:
    name: str
    category: str
    installer_id: str
    registry_probes: tuple[str, ...] = ()
    path_probes: tuple[str, ...] = ()
    installed: bool = field(default=False, compare=False)


def _app(name: str, category: str, installer_id: str, registry: list[str], paths: list[str]) -> AppDescriptor:
    return AppDescriptor(
        name=name,
        category=category,
        installer_id=installer_id,
        registry_probes=tuple(registry),
        path_probes=tuple(paths),
    )


def _both(relative: str) -> list[str]:
    return [_PF + relative, _PF86 + relative]


def default_catalog() -> list[AppDescriptor]:
    """Build a fresh catalog; each call returns independent descriptors."""
    return [
        _app("Chrome", "Web Browsers", "chrome",
             [_APP_PATHS + "chrome.exe", "SOFTWARE\\Google\\Chrome"],
             _both("Google\\Chrome\\Application\\chrome.exe") + [_LOCAL + "Google\\Chrome\\Application\\chrome.exe"]),
        _app("Firefox", "Web Browsers", "firefox",
             ["SOFTWARE\\Mozilla\\Mozilla Firefox", _APP_PATHS + "firefox.exe"],
             _both("Mozilla Firefox\\firefox.exe") + [_LOCAL + "Mozilla Firefox\\firefox.exe"]),
        _app("Edge", "Web Browsers", "edge",
             ["SOFTWARE\\Microsoft\\Edge", _APP_PATHS + "msedge.exe"],
             _both("Microsoft\\Edge\\Application\\msedge.exe")),
        _app("Zoom", "Messaging", "zoom",
             [_UNINSTALL + "ZoomUMX", _UNINSTALL_WOW64 + "ZoomUMX", _UNINSTALL + "Zoom"],
             _both("Zoom\\bin\\Zoom.exe") + [_ROAMING + "Zoom\\bin\\Zoom.exe", _LOCAL + "Zoom\\bin\\Zoom.exe"]),
        _app("Discord", "Messaging", "discord",
             [_UNINSTALL + "Discord", _APP_PATHS + "Discord.exe"],
             _both("Discord\\Discord.exe") + [_LOCAL + "Discord\\app-*\\Discord.exe"]),
        _app("VLC", "Media", "vlc",
             ["SOFTWARE\\VideoLAN\\VLC", _APP_PATHS + "vlc.exe"],
             _both("VideoLAN\\VLC\\vlc.exe") + [_LOCAL + "Programs\\VideoLAN\\VLC\\vlc.exe"]),
        _app("Audacity", "Media", "audacity",
             [_APP_PATHS + "audacity.exe"],
             _both("Audacity\\audacity.exe") + [_LOCAL + "Programs\\Audacity\\audacity.exe"]),
        _app("Blender", "Imaging", "blender",
             ["SOFTWARE\\BlenderFoundation", _APP_PATHS + "blender.exe"],
             _both("Blender Foundation\\Blender *\\blender.exe")),
        _app("Paint.NET", "Imaging", "paintdotnet",
             ["SOFTWARE\\Paint.NET"],
             _both("paint.net\\PaintDotNet.exe")),
        _app("GIMP", "Imaging", "gimp",
             [_APP_PATHS + "gimp-2.10.exe", "SOFTWARE\\Classes\\GIMP-2.10", _UNINSTALL_WOW64 + "GIMP-2.10"],
             _both("GIMP 3\\bin\\gimp.exe") + [_LOCAL + "Programs\\GIMP 3\\bin\\gimp.exe"]),
        _app("LibreOffice", "Documents", "libreoffice",
             ["SOFTWARE\\LibreOffice", _APP_PATHS + "soffice.exe"],
             _both("LibreOffice\\program\\soffice.exe")),
        _app("Python", "Developer Tools", "python",
             ["SOFTWARE\\Python\\PythonCore"],
             _both("Python*\\python.exe") + ["C:\\Python*\\python.exe", _LOCAL + "Programs\\Python\\Python*\\python.exe"]),
        _app("FileZilla", "Developer Tools", "filezilla",
             [_UNINSTALL + "FileZilla Client"],
             _both("FileZilla FTP Client\\filezilla.exe") + [_LOCAL + "Programs\\FileZilla FTP Client\\filezilla.exe"]),
        _app("Notepad++", "Developer Tools", "notepadplusplus",
             ["SOFTWARE\\Notepad++"],
             _both("Notepad++\\notepad++.exe") + [_LOCAL + "Programs\\Notepad++\\notepad++.exe"]),
        _app("WinSCP", "Developer Tools", "winscp",
             [_UNINSTALL + "winscp3_is1", _UNINSTALL_WOW64 + "winscp3_is1", _APP_PATHS + "WinSCP.exe"],
             _both("WinSCP\\WinSCP.exe") + [_LOCAL + "Programs\\WinSCP\\WinSCP.exe"]),
        _app("PuTTY", "Developer Tools", "putty",
             ["SOFTWARE\\SimonTatham\\PuTTY"],
             _both("PuTTY\\putty.exe") + [_LOCAL + "Programs\\PuTTY\\putty.exe"]),
        _app("Visual Studio Code", "Developer Tools", "vscode",
             [_UNINSTALL + "{771FD6B0-FA20-440A-A002-3B3BAC16DC50}_is1", _UNINSTALL + "VSCode",
              "SOFTWARE\\Classes\\Applications\\Code.exe"],
             _both("Microsoft VS Code\\Code.exe") + [_LOCAL + "Programs\\Microsoft VS Code\\Code.exe"]),
        _app("Evernote", "Other", "evernote",
             [_APP_PATHS + "Evernote.exe"],
             _both("Evernote\\Evernote.exe")),
        _app("Google Earth", "Other", "googleearth",
             ["SOFTWARE\\Google\\Google Earth Pro", _APP_PATHS + "googleearth.exe"],
             _both("Google\\Google Earth Pro\\client\\googleearth.exe")),
        _app("7-Zip", "Compression", "7zip",
             ["SOFTWARE\\7-Zip"],
             _both("7-Zip\\7z.exe")),
        _app("WinRAR", "Compression", "winrar",
             ["SOFTWARE\\WinRAR"],
             _both("WinRAR\\WinRAR.exe")),
        _app("qBittorrent", "File Sharing", "qbittorrent",
             ["SOFTWARE\\qBittorrent"],
             _both("qBittorrent\\qbittorrent.exe") + [_LOCAL + "Programs\\qBittorrent\\qbittorrent.exe"]),
    ]


def find_app(catalog: list[AppDescriptor], name: str) -> AppDescriptor | None:
    for app in catalog:
        if app.name == name:
            return app
    return None


def resolve_installer_ids(catalog: list[AppDescriptor], names: list[str]) -> list[str]:
    """Map app names to installer ids, silently skipping unknown names."""
    ids: list[str] = []
    for name in names:
        app = find_app(catalog, name)
        if app is not None:
            ids.append(app.installer_id)
    return ids


def by_category(catalog: list[AppDescriptor]) -> list[tuple[str, list[AppDescriptor]]]:
    """Group apps in the fixed category order, skipping empty categories."""
    groups: list[tuple[str, list[AppDescriptor]]] = []
    for category in CATEGORIES:
        apps = [a for a in catalog if a.category == category]
        if apps:
            groups.append((category, apps))
    return groups
