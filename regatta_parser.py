"""
manage2sail Regatta Results PDF Parser

Extracts regatta name, boat class, date, race count and the overall results
table from the text of a manage2sail results PDF, and picks out one sailor's
row by sail number.
Works on the plain-text layout produced by pdfplumber; matching is heuristic.
"""

import re
import sys
import logging
import pdfplumber
import pandas as pd
from dataclasses import dataclass, field
from typing import Optional, List

logger = logging.getLogger(__name__)


@dataclass
class ResultEntry:
    """One row of the overall results table"""
    rank: int
    sail_number: str
    name: str
    club: str
    total_points: int = 0
    net_points: int = 0

    def to_dict(self) -> dict:
        return {
            'rank': self.rank,
            'sailNumber': self.sail_number,
            'name': self.name,
            'club': self.club,
            'totalPoints': self.total_points,
            'netPoints': self.net_points,
        }


@dataclass
class ExtractionResult:
    """Everything pulled out of one results document"""
    success: bool = False
    regatta_name: str = ''
    boat_class: str = ''
    date: str = ''
    race_count: int = 0
    total_participants: int = 0
    participant: Optional[ResultEntry] = None
    all_results: List[ResultEntry] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'regattaName': self.regatta_name,
            'boatClass': self.boat_class,
            'date': self.date,
            'raceCount': self.race_count,
            'totalParticipants': self.total_participants,
            'participant': self.participant.to_dict() if self.participant else None,
            'allResults': [r.to_dict() for r in self.all_results],
            'error': self.error,
        }


# ---------------------------------------------------------------------------
# Header parsing
# ---------------------------------------------------------------------------

_BOILERPLATE_MARKERS = ('Powered by', 'Page ', 'Report Created', 'www.manage2sail')

AS_OF_RE = re.compile(r'As of ([0-9]{1,2} [A-Z]{3} [0-9]{4})', re.IGNORECASE)
REPORT_CREATED_RE = re.compile(r'Report Created [A-Z]{2,3} ([0-9]{1,2} [A-Z]{3} [0-9]{4})', re.IGNORECASE)
RACE_RE = re.compile(r'R([0-9]+)')


def split_lines(text: str) -> List[str]:
    """Split text into stripped, non-empty lines"""
    # pdf text can start with a byte order mark
    lines = [line.strip().strip('\ufeff').strip() for line in text.split('\n')]
    return [line for line in lines if line]


def find_regatta_name(lines: List[str]) -> str:
    """First line that isn't footer/header boilerplate and is longer than 3 chars."""
    for line in lines:
        if len(line) > 3 and not any(marker in line for marker in _BOILERPLATE_MARKERS):
            return line
    return ''


def find_boat_class(lines: List[str], regatta_name: str) -> str:
    """The line right after the regatta name, e.g. "Optimist B" or "420er".

    Long lines and table titles ("Overall Results") are rejected.
    """
    try:
        idx = lines.index(regatta_name)
    except ValueError:
        return ''
    if idx + 1 >= len(lines):
        return ''
    next_line = lines[idx + 1]
    if len(next_line) < 50 and 'Overall' not in next_line and 'Results' not in next_line:
        return next_line
    return ''


def find_report_date(text: str, report_date_fallback: bool = False) -> str:
    """Date from the "As of 14 AUG 2023" marker.

    With report_date_fallback, a "Report Created SUN 14 AUG 2023" footer is
    used when the marker is missing.
    """
    match = AS_OF_RE.search(text)
    if match:
        return match.group(1)
    if report_date_fallback:
        match = REPORT_CREATED_RE.search(text)
        if match:
            return match.group(1)
    return ''


def count_races(text: str) -> int:
    """Highest race column index (R1, R2, ... R12)"""
    numbers = [int(n) for n in RACE_RE.findall(text)]
    return max(numbers) if numbers else 0


# ---------------------------------------------------------------------------
# Results table rows
# ---------------------------------------------------------------------------

ROW_RE = re.compile(r'^([0-9]+)\s+(GER\s*[0-9]+)\s+(.+)', re.IGNORECASE)
CLUB_RE = re.compile(r'\s([A-Z]{2,10}(?:\s+[A-Z]+)?)\s+[0-9]')
POINTS_RE = re.compile(r'([0-9]+)\s+([0-9]+)\s*$')


def parse_result_row(line: str) -> Optional[ResultEntry]:
    """Parse a results table line.

    Handles:
      5 GER 13162 Moritz SCHUMANN TSC 8 7 5 7 (23) 50 27
      12 GER13162 Lena Maier 3 4 2 9 9
    """
    match = ROW_RE.match(line)
    if not match:
        return None

    rank = int(match.group(1))
    sail_num = match.group(2)
    rest = match.group(3)

    # Club is the first run of capitals followed by a score
    name = rest
    club = ''
    club_match = CLUB_RE.search(rest)
    if club_match:
        club = club_match.group(1)
        name = rest[:rest.index(club)]

    # Last two numbers are total and net points
    total_points = 0
    net_points = 0
    points_match = POINTS_RE.search(rest)
    if points_match:
        total_points = int(points_match.group(1))
        net_points = int(points_match.group(2))

    return ResultEntry(
        rank=rank,
        sail_number=re.sub(r'\s+', ' ', sail_num).strip(),
        name=name.strip(),
        club=club.strip(),
        total_points=total_points,
        net_points=net_points,
    )


# ---------------------------------------------------------------------------
# Sail number matching
# ---------------------------------------------------------------------------

def normalize_sail_number(sail_number: str) -> str:
    """'ger-1234' / 'GER 1234' / 'GER.1234' -> 'GER1234'"""
    return re.sub(r'[\s\-.]+', '', sail_number).upper()


def sail_number_digits(sail_number: str) -> str:
    return re.sub(r'[^0-9]', '', sail_number)


def sail_numbers_match(wanted: str, candidate: str) -> bool:
    """Loose comparison between a user-entered sail number and a table entry.

    Equal after normalisation, equal digits, or either one containing the
    other's digits. An empty wanted number never matches.
    """
    wanted_norm = normalize_sail_number(wanted)
    if not wanted_norm:
        return False
    wanted_digits = sail_number_digits(wanted)
    cand_norm = normalize_sail_number(candidate)
    cand_digits = sail_number_digits(candidate)
    return (
        cand_norm == wanted_norm or
        cand_digits == wanted_digits or
        wanted_digits in cand_norm or
        cand_digits in wanted_norm
    )


# ---------------------------------------------------------------------------
# Main entry points
# ---------------------------------------------------------------------------

def _extract(text: str, sail_number: str, report_date_fallback: bool) -> ExtractionResult:
    lines = split_lines(text)

    regatta_name = find_regatta_name(lines)
    boat_class = find_boat_class(lines, regatta_name)
    date = find_report_date(text, report_date_fallback)
    race_count = count_races(text)

    all_results = []
    participant = None
    max_rank = 0
    for line in lines:
        entry = parse_result_row(line)
        if entry is None:
            continue
        max_rank = max(max_rank, entry.rank)
        all_results.append(entry)
        if sail_numbers_match(sail_number, entry.sail_number):
            participant = entry

    return ExtractionResult(
        success=bool(regatta_name) and len(all_results) > 0,
        regatta_name=regatta_name,
        boat_class=boat_class,
        date=date,
        race_count=race_count,
        total_participants=max_rank,
        participant=participant,
        all_results=all_results,
    )


def parse_regatta_text(text: str, sail_number: str = '',
                       report_date_fallback: bool = False) -> ExtractionResult:
    """Extract regatta data from results PDF text.

    Never raises: a failure leaves every field at its default and puts the
    message in ``error``.
    """
    try:
        return _extract(text, sail_number or '', report_date_fallback)
    except Exception as e:
        logger.warning("Regatta text extraction failed: %s", e)
        return ExtractionResult(error=str(e))


def extract_pdf_text(pdf_path: str) -> str:
    """Text of every page, joined with newlines."""
    with pdfplumber.open(pdf_path) as pdf:
        logger.info("PDF pages: %d", len(pdf.pages))
        pages = []
        for page in pdf.pages:
            text = page.extract_text()
            if text:
                pages.append(text)
    return '\n'.join(pages)


def parse_regatta_pdf(pdf_path: str, sail_number: str = '',
                      report_date_fallback: bool = False) -> ExtractionResult:
    """Parse a manage2sail results PDF. PDF decode errors propagate."""
    text = extract_pdf_text(pdf_path)
    return parse_regatta_text(text, sail_number, report_date_fallback)


# ---------------------------------------------------------------------------
# Convenience helpers
# ---------------------------------------------------------------------------

RESULT_COLUMNS = ['rank', 'sail_number', 'name', 'club', 'total_points', 'net_points', 'is_participant']


def results_to_frame(result: ExtractionResult) -> pd.DataFrame:
    """Results table as a DataFrame in document order."""
    if not result.all_results:
        return pd.DataFrame(columns=RESULT_COLUMNS)
    return pd.DataFrame([{
        'rank': r.rank,
        'sail_number': r.sail_number,
        'name': r.name,
        'club': r.club,
        'total_points': r.total_points,
        'net_points': r.net_points,
        'is_participant': r is result.participant,
    } for r in result.all_results], columns=RESULT_COLUMNS)


def get_club_results(df, club): return df[df['club'].str.contains(club, case=False, na=False, regex=False)].copy()
def get_sailor_results(df, name): return df[df['name'].str.contains(name, case=False, na=False, regex=False)].copy()


def summarize_regatta(result: ExtractionResult) -> dict:
    df = results_to_frame(result)
    return {
        'regatta': result.regatta_name,
        'boat_class': result.boat_class,
        'date': result.date,
        'races': result.race_count,
        'participants': result.total_participants,
        'parsed_rows': len(df),
        'clubs': df.loc[df['club'] != '', 'club'].nunique(),
        'participant_rank': result.participant.rank if result.participant else None,
    }


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: python regatta_parser.py <results.pdf> [sail_number]")
        return 1
    pdf_path = argv[0]
    sail_number = argv[1] if len(argv) > 1 else ''

    print(f"Parsing: {pdf_path}")
    result = parse_regatta_pdf(pdf_path, sail_number)

    if result.error:
        print(f"Extraction failed: {result.error}")
    if not result.all_results:
        print("No results found!")
        return 0

    print(f"\n=== Regatta Summary ===")
    for k, v in summarize_regatta(result).items():
        print(f"  {k}: {v}")

    if sail_number:
        print(f"\n=== Sail Number {sail_number} ===")
        p = result.participant
        if p:
            print(f"  {p.rank}/{result.total_participants}  {p.sail_number}  {p.name}  {p.club}  "
                  f"total {p.total_points}  net {p.net_points}")
        else:
            print("  Not found")

    print("\n=== Results ===")
    df = results_to_frame(result)
    print(df[['rank', 'sail_number', 'name', 'club', 'total_points', 'net_points']].head(15).to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
