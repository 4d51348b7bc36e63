MANIFEST_EXTENSION = "json"
SIDECAR_EXTENSION = "json"
CACHED_SIDECAR_EXTENSION = "dmodman"
BACKUP_EXTENSION = "starmod_bkp"

# Existing directories in the game dir use this casing; links must match it.
DATA_DIR_NAME = "data"
TEXTURES_DIR_NAME = "textures"

FOMOD_INFO_FILE = "fomod/info.xml"
FOMOD_MODCONFIG_FILE = "fomod/moduleconfig.xml"

README_MARKER = "readme"
LOADER_EXTENSIONS = frozenset({"dll", "exe"})
# Without a data/ directory, the folder holding the master (then light) plugin is used.
PLUGIN_DIR_EXTENSIONS = ("esm", "esl")

CUSTOM_MOD_PRIORITY = 1000
CUSTOM_MOD_VERSION = "Custom"

# Composite suffixes come first so ``.tar.gz`` is not mistaken for ``.gz``.
ARCHIVE_SUFFIXES = (".tar.gz", ".tar.xz", ".7zip", ".7z", ".zip", ".rar")
