import os
import sys

# Ensure curio is importable in tests (e.g., `import services...`).
CURIO_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "curio"))
if CURIO_DIR not in sys.path:
    sys.path.insert(0, CURIO_DIR)
