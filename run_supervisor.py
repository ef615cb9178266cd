#!/usr/bin/env python
"""
Wrapper to run the backend launcher for local development.
Starts every configured service, then serves the /start-all trigger.
"""
from dotenv import load_dotenv

load_dotenv()

from meseca.supervisor.app import main  # noqa: E402

if __name__ == "__main__":
    main()
