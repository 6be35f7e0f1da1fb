"""Global configuration: constants, limits, and defaults."""

from pathlib import Path

# Default SQLite database location
DEFAULT_DB_PATH = Path("data") / "bim.db"

# Name of the store column every category query filters on
CATEGORY_COLUMN = "component_type"

# Catalog sampling bounds
PARAM_SAMPLE_SIZE = 15
AREA_SCAN_ROWS = 50
MAX_AREA_KEYS = 200

# Prompt-size caps
PROMPT_MAX_CATEGORIES = 120
PROMPT_MAX_SAMPLES = 8
PROMPT_MAX_AREA_KEYS = 40
PROMPT_MAX_CANDIDATES = 120

# Value disambiguation reads at most this many distinct live values
VALUE_CANDIDATE_LIMIT = 200

# Plan defaults
DEFAULT_LIMIT = 20
DEFAULT_TOP_K = 100

# Answer rendering
ANSWER_MAX_ENTRIES = 10

# Structured inference
STRUCTURED_MAX_RETRIES = 2
STRUCTURED_TEMPERATURE = 0.1
TEXT_TEMPERATURE = 0.2
MAX_OUTPUT_TOKENS = 2048

# Embedding ingest batching
EMBED_BATCH_SIZE = 100
EMBED_BATCH_DELAY_S = 0.2
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_EMBEDDING_DIMENSIONS = 512

# Token cache: refresh once remaining validity drops under this margin
TOKEN_SAFETY_MARGIN_S = 60.0
DEFAULT_TOKEN_TTL_S = 3600

# Viewable id used when a snapshot does not name one
DEFAULT_SNAPSHOT_GUID = "viewer-snapshot"
