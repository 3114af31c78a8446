import json
import logging
import re
from datetime import datetime, timezone
from itertools import islice
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel

from unitutor.services.availability import to_iso

logger = logging.getLogger(__name__)

ROOT = "https://www.thi.de"
START_URL = "https://www.thi.de/en/studies/degree-programmes/"
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126 Safari/537.36"
REQUEST_TIMEOUT = 20
MAX_MODULES = 150

DEGREE_RX = re.compile(
    r"\b(Bachelor|Master)\b|\b(B\.|M\.)\s?(Sc|Eng|A)\b"
    r"|\b(B\.\s?Sc\.|M\.\s?Sc\.|B\.\s?Eng\.|M\.\s?Eng\.|MBA|B\.\s?A\.|M\.\s?A\.)",
    re.IGNORECASE,
)
NAV_SKIP_RX = re.compile(
    r"(submenu|Open submenu|Close submenu|About us|Study programmes|Lifelong Learning|Service|Portal"
    r"|Dates|Timetable|Contact|Counselling|Fees|Scholarship|Application|Admission|Filter|reset Filter"
    r"|Select degree program or enter keyword)",
    re.IGNORECASE,
)
META_RX = re.compile(r"^(Degree:|Duration:|Start of studies:|Language:?|NC:|Dual Study:)", re.IGNORECASE)
FACULTY_RX = re.compile(r"^Faculty|Degree programmes in executive education", re.IGNORECASE)
MODULE_HEADING_RX = re.compile(r"(module|modules|curriculum|courses|studieninhalte|modul)", re.IGNORECASE)
DETAIL_FIELDS = {
    "duration": re.compile(r"^Duration:", re.IGNORECASE),
    "start": re.compile(r"^Start of studies:", re.IGNORECASE),
    "language": re.compile(r"^Language:?", re.IGNORECASE),
    "dual": re.compile(r"^Dual Study:", re.IGNORECASE),
}


class Program(BaseModel):
    name: str
    degree: str = ""
    faculty: str = ""
    url: Optional[str] = None
    duration: str = ""
    start: str = ""
    language: str = ""
    dual: str = ""
    modules: List[str] = []


def norm(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def fetch_html(url: str) -> str:
    res = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=REQUEST_TIMEOUT)
    res.raise_for_status()
    return res.text


def _element_siblings(siblings, limit: int) -> List[Tag]:
    return list(islice((s for s in siblings if isinstance(s, Tag)), limit))


def _program_name(block: Tag) -> str:
    for sibling in _element_siblings(block.previous_siblings, 8):
        text = norm(sibling.get_text(" "))
        if text and not META_RX.match(text) and not NAV_SKIP_RX.search(text):
            return text
    link = block.find_previous_sibling("a")
    text = norm(link.get_text(" ")) if link else ""
    return text if text and not NAV_SKIP_RX.search(text) else ""


def _detail_blocks(container: Tag, base_url: str, faculty: str) -> List[Program]:
    programs = []
    for marker in container.find_all(string=re.compile(r"\bDegree:", re.IGNORECASE)):
        block = marker.parent
        # <strong>Degree:</strong> Bachelor ...
        if norm(block.get_text(" ")).lower() == "degree:" and block.parent is not None:
            block = block.parent
        name = _program_name(block)
        if not name:
            continue

        details: Dict[str, str] = {"degree": "", "duration": "", "start": "", "language": "", "dual": ""}
        match = re.search(r"Degree:\s*(.*)$", norm(block.get_text(" ")), re.IGNORECASE)
        if match:
            details["degree"] = norm(match.group(1))

        for sibling in _element_siblings(block.next_siblings, 12):
            text = norm(sibling.get_text(" "))
            for key, rx in DETAIL_FIELDS.items():
                if rx.match(text):
                    details[key] = norm(rx.sub("", text, count=1))
                    break

        if not DEGREE_RX.search(details["degree"]):
            continue

        url = None
        for link in container.find_all("a", href=True):
            if norm(link.get_text(" ")).lower() == name.lower():
                url = urljoin(base_url, link["href"])
                break

        programs.append(Program(name=name, faculty=faculty, url=url, **details))
    return programs


def extract_programs(html: str, base_url: str = START_URL) -> List[Program]:
    """Parse the degree-programme overview into one record per programme, deduped by name."""
    soup = BeautifulSoup(html, "html.parser")
    found: List[Program] = []
    for heading in soup.find_all("h2"):
        title = norm(heading.get_text(" "))
        if not FACULTY_RX.search(title):
            continue
        faculty = re.sub(r"^Faculty of\s*", "", title, flags=re.IGNORECASE).strip()
        found.extend(_detail_blocks(heading.parent, base_url, faculty))

    seen = set()
    unique = []
    for program in found:
        name = norm(program.name)
        if not name or NAV_SKIP_RX.search(name) or not DEGREE_RX.search(program.degree or name):
            continue
        if name.lower() in seen:
            continue
        seen.add(name.lower())
        unique.append(program.model_copy(update={"name": name}))
    return unique


def extract_modules(html: str) -> List[str]:
    soup = BeautifulSoup(html, "html.parser")
    modules: List[str] = []
    for heading in soup.find_all(["h2", "h3", "h4"]):
        if not MODULE_HEADING_RX.search(norm(heading.get_text(" "))):
            continue
        section = heading.parent
        for item in section.select("ul li, ol li"):
            text = norm(item.get_text(" "))
            if 2 < len(text) < 140 and not NAV_SKIP_RX.search(text):
                modules.append(text)
        for cell in section.select("table td, table th"):
            text = norm(cell.get_text(" "))
            if 2 < len(text) < 140 and not re.search(r"module|course", text, re.IGNORECASE) and not NAV_SKIP_RX.search(text):
                modules.append(text)
    return list(dict.fromkeys(modules))[:MAX_MODULES]


def enrich_with_modules(program: Program) -> Program:
    url = program.url
    if not url or not url.startswith(ROOT) or re.search(r"\.(pdf|docx?)$", url, re.IGNORECASE):
        return program
    try:
        modules = extract_modules(fetch_html(url))
    except requests.RequestException as e:
        logger.warning(f"Could not load modules for {program.name}: {str(e)}")
        return program
    return program.model_copy(update={"modules": modules})


def scrape_programs(start_url: str = START_URL) -> Dict:
    programs = [enrich_with_modules(p) for p in extract_programs(fetch_html(start_url), start_url)]
    return {
        "source": start_url,
        "scrapedAt": to_iso(datetime.now(timezone.utc)),
        "programs": [p.model_dump() for p in programs],
    }


def write_programs(data: Dict, out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"Saved {len(data['programs'])} programs to {out_path}")


def load_programs(path: Path) -> Dict:
    if not path.exists():
        return {"source": START_URL, "scrapedAt": None, "programs": []}
    return json.loads(path.read_text(encoding="utf-8"))
