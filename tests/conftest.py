"""
Shared test setup for the hash ring test suite.
"""
import os
import sys
import tempfile

# Get the absolute path to the src directory
project_root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
src_dir = os.path.join(project_root, "src")

# Add src directory to path so the flat modules import without installation
if src_dir not in sys.path:
    sys.path.insert(0, src_dir)

# Keep test log files out of the working tree; must happen before ring_logger is used
os.environ.setdefault("HASH_RING_LOG_DIR", tempfile.mkdtemp(prefix="hash_ring_logs_"))
