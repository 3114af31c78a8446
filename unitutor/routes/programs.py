from fastapi import APIRouter
from pathlib import Path
from unitutor.services.program_scraper import load_programs
import os

router = APIRouter()

# -------- Degree programmes --------
@router.get("")
def get_programs():
    return load_programs(Path(os.getenv("PROGRAMS_PATH", "data/programs.json")))
