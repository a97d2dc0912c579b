import re
import sqlparse
from sqlparse.tokens import DML, Keyword, Whitespace, Comment
from token_api.utils.logger import logger

# Set of potentially dangerous SQL keywords to block
DANGEROUS_KEYWORDS = {
    'DROP', 'INSERT', 'UPDATE', 'DELETE', 'ALTER',
    'CREATE', 'EXEC', 'MERGE', 'TRUNCATE', 'REPLACE',
    'GRANT', 'REVOKE', 'RENAME', 'ATTACH', 'DETACH',
}

# ClickHouse server-side parameter placeholder: {name:Type}
PLACEHOLDER_RE = re.compile(r"\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*:\s*([^{}]+?)\s*\}")


def fold_statement(text: str) -> str:
    """
    Folds a multi-line SQL file into a single-line statement.
    Comments (full-line and trailing) are stripped first, then each line
    break or `;` collapses with its surrounding whitespace into one space.
    """
    stripped = sqlparse.format(text, strip_comments=True)
    return re.sub(r"\s*[\n;]\s*", " ", stripped).strip()


def extract_placeholders(query: str) -> dict:
    """Returns {parameter name: ClickHouse type} for every `{name:Type}` in the query."""
    placeholders = {}
    for name, ch_type in PLACEHOLDER_RE.findall(query):
        placeholders.setdefault(name, ch_type.strip())
    return placeholders


def is_valid_sql_select(query: str) -> bool:
    """
    Validates that the provided query is a single safe SELECT statement.
    - Allows optional leading CTEs (WITH ...)
    - Strips comments & whitespace when checking DML
    - Blocks queries containing any DANGEROUS_KEYWORDS
    """
    query = query.strip()
    if not query:
        logger.warning("Empty SQL query.")
        return False

    # Parse and ensure exactly one statement
    parsed = sqlparse.parse(query)
    if len(parsed) != 1:
        logger.warning("Expected a single SQL statement, found %d.", len(parsed))
        return False

    stmt = parsed[0]
    # Filter out whitespace and comments
    tokens = [t for t in stmt.tokens if not t.is_whitespace and t.ttype not in (Whitespace, Comment)]
    if not tokens:
        logger.warning("No meaningful tokens in SQL statement.")
        return False

    # Allow leading WITH (CTE) before SELECT
    idx = 0
    first = tokens[0]
    if first.ttype in Keyword and first.value.upper() == 'WITH':
        # find the SELECT after the CTE
        for i, t in enumerate(tokens):
            if t.ttype is DML and t.value.upper() == 'SELECT':
                idx = i
                break
        else:
            logger.warning("CTE found but no SELECT inside it.")
            return False

    # Check that the core DML is SELECT
    core = tokens[idx]
    if core.ttype is not DML or core.value.upper() != 'SELECT':
        logger.warning("Query is not a SELECT statement: %s", core.value)
        return False

    # Scan for dangerous keywords anywhere in the flattened tokens
    for t in stmt.flatten():
        if t.ttype in Keyword and t.value.upper() in DANGEROUS_KEYWORDS:
            logger.error("Dangerous keyword detected: %s", t.value.upper())
            return False

    return True
