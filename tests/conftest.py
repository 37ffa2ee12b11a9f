import os
import tempfile

# config.py creates its data directories on import, keep them out of $HOME
os.environ.setdefault("XDG_DATA_HOME", tempfile.mkdtemp(prefix="literary-topics-test-"))
