"""Allows `python -m encountersim`."""

from encountersim.main import main

raise SystemExit(main())
