"""
FloorSketch - Zentrale Versionsverwaltung
=========================================

Alle Versionsinformationen werden hier zentral gepflegt.
Import: from config.version import VERSION, VERSION_STRING, APP_NAME
"""

# Haupt-Versionsnummer (Semantic Versioning: MAJOR.MINOR.PATCH)
VERSION_MAJOR = 0
VERSION_MINOR = 3
VERSION_PATCH = 0

# Release-Typ: "alpha", "beta", "rc1", "" (leer für stable release)
VERSION_SUFFIX = "alpha"

# App-Name
APP_NAME = "FloorSketch"

# Format-Version der serialisierten Szene (Snapshots, gespeicherte Pläne)
SCENE_FORMAT_VERSION = 1

# Abgeleitete Strings
VERSION = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"
VERSION_STRING = f"{VERSION}-{VERSION_SUFFIX}" if VERSION_SUFFIX else VERSION
VERSION_FULL = f"v{VERSION_STRING}"
