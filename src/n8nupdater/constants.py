"""Static defaults shared by n8nupdater services."""

APP_NAME = "n8n"
SERVICE_NAME = "n8n"
API_KEY_VARIABLE = "N8N_API_KEY"
API_CONTAINER_PORT = 5678
API_WORKFLOWS_PATH = "/api/v1/workflows"
API_EXPORT_TIMEOUT_SECONDS = 30

DEFAULT_INSTALL_DIR = "/opt/n8n-docker-caddy"
DEFAULT_BACKUP_DIR = "/root/n8n-backups"
DEFAULT_LOG_FILE = "/var/log/n8nupdater.log"
DEFAULT_LOCK_FILE = "/var/run/n8nupdater.lock"
DEFAULT_CONFIG_FILE = "/etc/n8nupdater.yml"
DEFAULT_TIMEOUT_SECONDS = 600

COMPOSE_FILENAMES = ("docker-compose.yml", "docker-compose.yaml")
ENV_FILENAME = ".env"

FALLBACK_INSTALL_DIRS = (
    "/opt/n8n-docker-caddy",
    "/opt/n8n",
    "/opt/docker/n8n",
    "/home/n8n",
)
SCAN_ROOT = "/opt"
SCAN_MAX_DEPTH = 3
SCAN_NAME_PATTERNS = ("n8n", "docker")

DATABASE_EXTENSIONS = (".db", ".sqlite", ".sqlite3")
DATABASE_SCAN_MAX_DEPTH = 3
DOCKER_VOLUME_DATA_DIR = "_data"

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
MANIFEST_FILENAME = "backup-info.txt"
WORKFLOWS_FILENAME = "workflows.json"
CONFIG_ARCHIVE_NAME = "config.tar.gz"
DISK_SPACE_WARNING_MB = 100

SETTLE_DELAY_SECONDS = 5
FAILED_CONTAINER_STATES = ("exited", "dead")
