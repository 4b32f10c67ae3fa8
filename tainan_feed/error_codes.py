"""Stable failure codes for fetch, decode and aggregation outcomes.

Used by: feed_fetch, aggregate (FetchReport), logging, /api/date endpoint.
"""

# Transport codes
FETCH_TIMEOUT = "FETCH_TIMEOUT"
FETCH_TRANSIENT = "FETCH_TRANSIENT"
RATE_LIMITED = "RATE_LIMITED"
FETCH_PERMANENT = "FETCH_PERMANENT"

# Body codes
PARSE_ERROR = "PARSE_ERROR"            # body is not JSON / not the expected shape
VALIDATION_ERROR = "VALIDATION_ERROR"  # detail JSON didn't fit NewsItem

# Aggregation categories
INDEX_UNAVAILABLE = "INDEX_UNAVAILABLE"    # source degraded to empty index
DETAIL_UNAVAILABLE = "DETAIL_UNAVAILABLE"  # single item dropped
NO_DATA_FOR_DATE = "NO_DATA_FOR_DATE"      # both sources empty, not an error
