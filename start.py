#!/usr/bin/env python3
"""
Start script - runs the recorder with settings from the environment / .env
"""
import sys

if __name__ == "__main__":
    from app.main import main

    sys.exit(main())
