"""
Prompt Templates

Fixed instructions sent with every synthesis call, plus the templates for
the notes pass, the final multi-pass synthesis and revisions.
"""

SYSTEM_PROMPT = """You are a professional production breakdown specialist. Your job is to analyze film/video production briefs, scripts, and related documents to create detailed production breakdowns.

CRITICAL RULES:
1. ONLY state facts explicitly mentioned in the provided documents
2. Clearly mark any assumptions as "RECOMMENDED" or "ASSUMED"
3. NEVER mix up details from different projects or files
4. Read scripts carefully for hidden requirements (stunts, special equipment, etc.)
5. Format crew as "Department 1x" unless specific numbers are stated

BREAKDOWN STRUCTURE:
- SHOOT DAYS
- CREW (Travel CONFIRMED, Travel RECOMMENDED, Technical Crew)
- EQUIPMENT
- LOCATIONS
- ART/PROPS
- TRANSPORT
- TALENTS (extracted from script)
- USAGE (if mentioned)
- SPECIAL NOTES & QUESTIONS
- MISSING/TBD INFORMATION

Always separate CONFIRMED facts from RECOMMENDED assumptions."""

LEADING_INSTRUCTION = (
    "Please analyze these production brief documents and create a detailed production "
    "breakdown following the format and rules in your system prompt. Content from each "
    "file is bracketed by START/END markers naming the file; never attribute a detail "
    "to a file other than the one whose markers enclose it."
)

NOTES_SYSTEM_PROMPT = """You condense excerpts of film/video production documents into fact-only notes for a later breakdown step.

RULES:
1. Record ONLY facts explicitly stated in the excerpt you are given
2. Do not recommend, assume, estimate or fill gaps
3. Keep every fact attached to the file name it came from
4. Preserve numbers, dates, names and quantities exactly as written"""

NOTES_PROMPT = """Extract production facts from the document excerpt below. Output compact bullet points only, under these headings (omit a heading if nothing applies):

PROJECT / CLIENT
SHOOT DAYS & SCHEDULE
CREW
EQUIPMENT
LOCATIONS
ART/PROPS
TRANSPORT
TALENTS
USAGE
OPEN QUESTIONS

Rules:
- Only facts stated in the excerpt. No recommendations, no inferences.
- Prefix anything ambiguous or partially legible with "UNCERTAIN:".
- Keep the file name from the excerpt markers next to each fact.

Excerpt:
{text}"""

FINAL_SYNTHESIS_PROMPT = """The source documents were too long to read in one pass, so they were condensed into the extracted notes below. Build the full production breakdown from these notes.

Any attached page images are for visual corroboration only: use them to confirm or clarify the notes, and list any discrepancy between an image and the notes under SPECIAL NOTES & QUESTIONS instead of silently choosing one.

EXTRACTED NOTES:
{notes}"""

NOTES_SEPARATOR = "\n\n" + "-" * 40 + "\n\n"

REVISION_PROMPT = """Please revise the breakdown based on this feedback: {revision_request}

Current breakdown:
{current_breakdown}"""


def file_marker(kind: str, filename: str, detail: str = "") -> str:
    """START/END bracket naming a source file."""
    suffix = f" ({detail})" if detail else ""
    return f"=== {kind} FILE: {filename}{suffix} ==="


def chunk_block_text(filename: str, index: int, total: int, chunk: str) -> str:
    """One text chunk wrapped in markers carrying the file name and position."""
    detail = f"chunk {index}/{total}"
    return "\n".join([
        file_marker("START", filename, detail),
        chunk,
        file_marker("END", filename, detail),
    ])


def notes_heading(index: int, total: int) -> str:
    return f"[NOTES {index}/{total}]"
