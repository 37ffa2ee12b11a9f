import os
from pathlib import Path

# We store files relative to the XDG Base Directory specification
XDG_DATA = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share"))

# The root is the data directory, which contains the output database and
# subdirectories for files we want to keep in the local file system.
DATA_ROOT = XDG_DATA / "literary-topics"
DATA_ROOT.mkdir(parents=True, exist_ok=True)

# Drop the four CSV exports of the topic model here, or point the
# source_tables asset at a remote base URL instead.
SOURCE_DIR = DATA_ROOT / "source"
SOURCE_DIR.mkdir(parents=True, exist_ok=True)

# Snapshots of the raw tables as they were fetched
RAW_DIR = DATA_ROOT / "raw"
RAW_DIR.mkdir(parents=True, exist_ok=True)

DB_PATH = DATA_ROOT / "analytics.db"

# Number of topics produced by the upstream NMF model. This is a property of
# the model's schema, it is never derived from the data.
TOPIC_COUNT = 13

# A sample whose mean topic total is below this is rescaled per document
NORMALIZATION_THRESHOLD = 0.95
NORMALIZATION_SAMPLE_SIZE = 100

TOP_AUTHORS = 20

# Minimum absolute correlation for two topics to be linked in the network
LINK_THRESHOLD = 0.05
