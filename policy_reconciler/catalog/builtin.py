"""
Built-in policy definitions for Windows and macOS.

Windows keys are relative to HKLM or HKCU (chosen by scope at call
time). macOS keys name a preference domain and a key inside it.
"""

from typing import Any, List

from ..core.models import Platform, PolicyDefinition, ValueType
from .catalog import PolicyCatalog


def _policy(platform: Platform, name: str, native_key: str, value_type: ValueType,
            default: Any, description: str, category: str) -> PolicyDefinition:
    return PolicyDefinition(
        friendly_name=name,
        platform=platform,
        native_key=native_key,
        value_type=value_type,
        default_value=default,
        description=description,
        category=category,
    )


_WIN_POLICIES = r"SOFTWARE\Policies\Microsoft\Windows"
_WIN_SYSTEM = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Policies\System"
_WIN_EXPLORER = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Policies\Explorer"
_WIN_DESKTOP = r"SOFTWARE\Policies\Microsoft\Windows\Control Panel\Desktop"
_WIN_FIREWALL = r"SOFTWARE\Policies\Microsoft\WindowsFirewall"
_WIN_DEFENDER = r"SOFTWARE\Policies\Microsoft\Windows Defender"

WINDOWS_POLICIES: List[PolicyDefinition] = [
    _policy(Platform.WINDOWS, "ScreenSaverEnabled", _WIN_DESKTOP + r"\ScreenSaveActive",
            ValueType.STRING, "1", "Enable the screen saver", "screensaver"),
    _policy(Platform.WINDOWS, "ScreenSaverTimeout", _WIN_DESKTOP + r"\ScreenSaveTimeOut",
            ValueType.STRING, "900", "Screen saver timeout in seconds", "screensaver"),
    _policy(Platform.WINDOWS, "ScreenSaverPasswordProtected", _WIN_DESKTOP + r"\ScreenSaverIsSecure",
            ValueType.STRING, "1", "Require a password when the screen saver stops", "screensaver"),
    _policy(Platform.WINDOWS, "InactivityTimeoutSeconds", _WIN_SYSTEM + r"\InactivityTimeoutSecs",
            ValueType.INT, 900, "Machine inactivity limit before the session locks", "screensaver"),
    _policy(Platform.WINDOWS, "DisableLockScreen", _WIN_POLICIES + r"\Personalization\NoLockScreen",
            ValueType.BOOL, False, "Do not display the lock screen", "screensaver"),
    _policy(Platform.WINDOWS, "FirewallDomainProfileEnabled",
            _WIN_FIREWALL + r"\DomainProfile\EnableFirewall",
            ValueType.BOOL, True, "Windows Firewall enabled for the domain profile", "firewall"),
    _policy(Platform.WINDOWS, "FirewallPrivateProfileEnabled",
            _WIN_FIREWALL + r"\StandardProfile\EnableFirewall",
            ValueType.BOOL, True, "Windows Firewall enabled for the private profile", "firewall"),
    _policy(Platform.WINDOWS, "FirewallPublicProfileEnabled",
            _WIN_FIREWALL + r"\PublicProfile\EnableFirewall",
            ValueType.BOOL, True, "Windows Firewall enabled for the public profile", "firewall"),
    _policy(Platform.WINDOWS, "DisableAutomaticUpdates", _WIN_POLICIES + r"\WindowsUpdate\AU\NoAutoUpdate",
            ValueType.BOOL, False, "Turn off Automatic Updates", "updates"),
    _policy(Platform.WINDOWS, "AutomaticUpdateOption", _WIN_POLICIES + r"\WindowsUpdate\AU\AUOptions",
            ValueType.INT, 4, "Automatic Updates behaviour (4 = download and schedule install)", "updates"),
    _policy(Platform.WINDOWS, "TelemetryLevel", _WIN_POLICIES + r"\DataCollection\AllowTelemetry",
            ValueType.INT, 1, "Diagnostic data level (0 = security, 3 = full)", "privacy"),
    _policy(Platform.WINDOWS, "AllowCortana", _WIN_POLICIES + r"\Windows Search\AllowCortana",
            ValueType.BOOL, True, "Allow Cortana", "privacy"),
    _policy(Platform.WINDOWS, "SmartScreenEnabled", _WIN_POLICIES + r"\System\EnableSmartScreen",
            ValueType.BOOL, True, "Configure Windows Defender SmartScreen", "defender"),
    _policy(Platform.WINDOWS, "DisableAntiSpyware", _WIN_DEFENDER + r"\DisableAntiSpyware",
            ValueType.BOOL, False, "Turn off Microsoft Defender Antivirus", "defender"),
    _policy(Platform.WINDOWS, "UserAccountControlEnabled", _WIN_SYSTEM + r"\EnableLUA",
            ValueType.BOOL, True, "Run all administrators in Admin Approval Mode", "uac"),
    _policy(Platform.WINDOWS, "AutoRunDisabledDriveTypes", _WIN_EXPLORER + r"\NoDriveTypeAutoRun",
            ValueType.INT, 255, "Drive types for which AutoRun is disabled (255 = all)", "uac"),
    _policy(Platform.WINDOWS, "LegalNoticeCaption", _WIN_SYSTEM + r"\legalnoticecaption",
            ValueType.STRING, "", "Title of the logon legal notice", "login"),
    _policy(Platform.WINDOWS, "LegalNoticeText", _WIN_SYSTEM + r"\legalnoticetext",
            ValueType.STRING, "", "Body of the logon legal notice", "login"),
]

_MAC_SCREENSAVER = "com.apple.screensaver"
_MAC_UPDATE = "/Library/Preferences/com.apple.SoftwareUpdate"
_MAC_FIREWALL = "/Library/Preferences/com.apple.alf"
_MAC_LOGIN = "/Library/Preferences/com.apple.loginwindow"

MACOS_POLICIES: List[PolicyDefinition] = [
    _policy(Platform.MACOS, "ScreenSaverTimeout", _MAC_SCREENSAVER + ":idleTime",
            ValueType.INT, 1200, "Screen saver idle time in seconds", "screensaver"),
    _policy(Platform.MACOS, "ScreenSaverPasswordProtected", _MAC_SCREENSAVER + ":askForPassword",
            ValueType.BOOL, True, "Require a password after the screen saver starts", "screensaver"),
    _policy(Platform.MACOS, "ScreenSaverPasswordDelay", _MAC_SCREENSAVER + ":askForPasswordDelay",
            ValueType.INT, 5, "Seconds before the screen saver password is required", "screensaver"),
    _policy(Platform.MACOS, "FirewallState", _MAC_FIREWALL + ":globalstate",
            ValueType.INT, 1, "Application firewall state (0 = off, 1 = on, 2 = essential only)", "firewall"),
    _policy(Platform.MACOS, "FirewallStealthMode", _MAC_FIREWALL + ":stealthenabled",
            ValueType.INT, 1, "Do not respond to ICMP probes", "firewall"),
    _policy(Platform.MACOS, "FirewallLogging", _MAC_FIREWALL + ":loggingenabled",
            ValueType.INT, 1, "Application firewall logging", "firewall"),
    _policy(Platform.MACOS, "AutomaticUpdateCheck", _MAC_UPDATE + ":AutomaticCheckEnabled",
            ValueType.BOOL, True, "Automatically check for software updates", "updates"),
    _policy(Platform.MACOS, "AutomaticUpdateDownload", _MAC_UPDATE + ":AutomaticDownload",
            ValueType.BOOL, True, "Download new updates when available", "updates"),
    _policy(Platform.MACOS, "CriticalUpdateInstall", _MAC_UPDATE + ":CriticalUpdateInstall",
            ValueType.BOOL, True, "Install system data files and security updates", "updates"),
    _policy(Platform.MACOS, "GuestAccountEnabled", _MAC_LOGIN + ":GuestEnabled",
            ValueType.BOOL, False, "Allow guests to log in", "login"),
    _policy(Platform.MACOS, "ShowFullNameAtLogin", _MAC_LOGIN + ":SHOWFULLNAME",
            ValueType.BOOL, True, "Show name and password fields instead of a user list", "login"),
    _policy(Platform.MACOS, "LoginWindowText", _MAC_LOGIN + ":LoginwindowText",
            ValueType.STRING, "", "Message shown in the login window", "login"),
    _policy(Platform.MACOS, "ShowAllFileExtensions", "NSGlobalDomain:AppleShowAllExtensions",
            ValueType.BOOL, True, "Always show file name extensions in Finder", "privacy"),
]


def build_default_catalog() -> PolicyCatalog:
    """Build the compiled-in catalog for all supported platforms."""
    return PolicyCatalog(WINDOWS_POLICIES + MACOS_POLICIES)
