#!/usr/bin/env python3
"""
imgharvest — Rich CLI Entry Point.

Usage:
    python main.py                    # Show help
    python main.py create 100         # Scrape and store 100 images
    python main.py create --proxy -w 2000
    python main.py read 25            # Read 25 records back
    python main.py status             # Show store stats
    python main.py config             # Show configuration
"""

from cli.app import app

if __name__ == "__main__":
    app()
