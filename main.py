#!/usr/bin/env python3
"""branchsmith - feature branch naming and merge workflows for git."""

from branchsmith.cli import main

if __name__ == "__main__":
    main()
