"""Internal constants shared across the library."""

CDN_HOST = "https://cdn.segment.com"
USER_AGENT = "pyconsent/0.1"
INTEGRATIONS_PATH = "/v1/projects/{write_key}/integrations"

COOKIE_NAME = "tracking-preferences"
COOKIE_MAX_AGE_SECONDS = 365 * 24 * 3600
RECORD_VERSION = 1

# Integration keys the analytics loader always sets.
INTEGRATION_ALL = "All"
INTEGRATION_SEGMENT = "Segment.io"
