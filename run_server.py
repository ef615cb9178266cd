#!/usr/bin/env python
"""
Wrapper to run the Meseca gateway for local development.
Loads .env before settings are read so the values also reach child processes.
"""
from dotenv import load_dotenv

load_dotenv()

from meseca.api.main import main  # noqa: E402

if __name__ == "__main__":
    main()
