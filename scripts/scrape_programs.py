#!/usr/bin/env python3
"""
Scrape the university degree-programme overview into a JSON file served at GET /programs.

Usage:
    python3 scripts/scrape_programs.py [output.json]
"""

import sys
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Add the parent directory to the sys.path to import unitutor modules
sys.path.append(str(Path(__file__).parent.parent))

from unitutor.services.program_scraper import scrape_programs, write_programs

def main():
    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    out_path = Path(sys.argv[1] if len(sys.argv) > 1 else os.getenv("PROGRAMS_PATH", "data/programs.json"))
    try:
        data = scrape_programs()
    except Exception as e:
        print(f"❌ Scrape failed: {e}")
        sys.exit(1)

    write_programs(data, out_path)
    print(f"✅ Saved {len(data['programs'])} programs to {out_path}")

if __name__ == "__main__":
    main()
