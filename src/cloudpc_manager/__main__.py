# nuitka-project: --mode=app
# nuitka-project: --enable-plugin=pyside6
# nuitka-project: --include-qt-plugins=sensible
# nuitka-project: --nofollow-import-to=*.tests
# nuitka-project: --nofollow-import-to=pytest
# nuitka-project: --python-flag=-OO
# nuitka-project: --output-filename=CloudPCManager

"""
Entry point for running cloudpc_manager as a module.

This file enables:
- `python -m cloudpc_manager`
- Nuitka compilation with `nuitka src/cloudpc_manager`
"""

from __future__ import annotations

from cloudpc_manager import main

if __name__ == "__main__":
    main()
