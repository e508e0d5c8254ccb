import os

APP_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_DIR = os.path.join(APP_DIR, 'config')
DB_FILE = os.path.join(CONFIG_DIR, 'idgames.db')
CONFIG_FILE = os.path.join(CONFIG_DIR, 'settings.yaml')
MODELS_DIR = os.path.join(APP_DIR, 'models')
SCHEMA_FILE = os.path.join(MODELS_DIR, 'catalog_schema.ini')

BUILD_VERSION = '20261018_0900'
USER_AGENT = f'wadcatalog/{BUILD_VERSION}'

IDGAMES_API_URL = 'https://www.doomworld.com/idgames/api/api.php'

# Crawler defaults
DELAY_TIME = 5
DEBUG_REQUESTS = 100
POPULATE_ERROR_THRESHOLD = 5
PARSE_ERROR_THRESHOLD = 5
REQUEST_TIMEOUT = 30

# Read/extract buffer size for containers and checksums
CHUNK_SIZE = 65536

DEFAULT_SETTINGS = {
    "crawler": {
        "api_url": IDGAMES_API_URL,
        "output_format": "xml",
        "start_at": 1,
        "random_wait": True,
        "random_wait_time": DELAY_TIME,
        "debug_requests": DEBUG_REQUESTS,
        "die_on_error": True,
        "request_timeout": REQUEST_TIMEOUT,
        "user_agent": USER_AGENT,
    },
    "catalog": {
        "database": DB_FILE,
        "schema_file": SCHEMA_FILE,
        "check_schema": True,
    },
    "containers": {
        "temp_dir": None,
        "wad_extensions": ["wad"],
    },
}

OUTPUT_FORMATS = [
    'json',
    'xml',
]

ZIP_EXTENSIONS = [
    'zip',
]

WAD_EXTENSIONS = [
    'wad',
]

WAD_MAGIC = [
    b'IWAD',
    b'PWAD',
]

ZIP_MAGIC = b'PK\x03\x04'
