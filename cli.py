#!/usr/bin/env python3
"""
PhotoTune Command Line Interface

Entry point for running the CLI from a source checkout without installing
the package. Installed copies expose the same commands as ``phototune``.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from phototune.cli.main import main


if __name__ == '__main__':
    main()
