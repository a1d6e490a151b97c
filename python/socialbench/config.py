# --- CASSANDRA CONNECTION SETTINGS ---
# Contact points default to a local node. Override with CASSANDRA_HOST
# (comma-separated) when the cluster runs elsewhere, e.g. in a container.
import os

CASSANDRA_HOSTS = [h.strip() for h in os.environ.get("CASSANDRA_HOST", "localhost").split(",") if h.strip()]
CASSANDRA_PORT = int(os.environ.get("CASSANDRA_PORT", 9042))
LOCAL_DATACENTER = os.environ.get("CASSANDRA_LOCAL_DC", "datacenter1")
KEYSPACE = os.environ.get("SOCIAL_KEYSPACE", "social_media")

# Replication used when the schema initializer creates the keyspace.
REPLICATION_FACTOR = int(os.environ.get("SOCIAL_REPLICATION_FACTOR", 3))

# Connection attempts before startup gives up.
CONNECT_RETRIES = 5
CONNECT_RETRY_DELAY = 5.0

# Per-request timeout in seconds.
REQUEST_TIMEOUT = float(os.environ.get("CASSANDRA_REQUEST_TIMEOUT", 12.0))


# --- WRITE LOAD SETTINGS ---

COMMENTS_PER_SECOND = int(os.environ.get("SOCIAL_COMMENT_RATE", 20))
LIKES_PER_SECOND = int(os.environ.get("SOCIAL_LIKE_RATE", 50))

# Upper bound on users and posts pulled into the reference cache at startup.
REFERENCE_LIMIT = 1000

# Progress report cadence, in seconds.
REPORT_INTERVAL = 5.0
REPORT_INITIAL_DELAY = 1.0

# How long a shutdown waits for in-flight scheduler tasks.
SHUTDOWN_DRAIN_TIMEOUT = 5.0

# Run length when no usable duration is given on the command line.
DEFAULT_DURATION = 300

# A task that falls further behind than this many periods drops the backlog
# instead of firing back-to-back to catch up.
MAX_MISSED_TICKS = 10


# --- SEEDING SETTINGS ---

NUM_USERS = 100
NUM_POSTS = 200
NUM_COMMENTS = 1000
NUM_LIKES = 2000

# In-flight requests while bulk loading.
SEED_CONCURRENCY = 50

# Set FAKER_SEED to make seeded content reproducible between runs.
FAKER_SEED = int(os.environ["FAKER_SEED"]) if os.environ.get("FAKER_SEED") else None


# --- LOGGING AND OUTPUT ---
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
