"""Constants for snapshot ingestion."""

# Source names used in logs and failure records
SOURCE_PAPERS = "papers"
SOURCE_CITATIONS = "citations"
SOURCE_REPO_MENTIONS = "repo_mentions"

# Repository search counts above this are treated as outliers
DEFAULT_REPO_COUNT_CAP = 1000
