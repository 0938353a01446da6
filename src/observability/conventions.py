"""
Telemetry names shared across the service.

Span names, attribute keys and metric names live here so that dashboards and
queries have a single place to look them up.
"""

SERVICE_NAME = "MyOpenTelemetryApi"

# =============================================================================
# Service / Activity Sources
# =============================================================================

CONTACT_SERVICE = "ContactService"
GROUP_SERVICE = "GroupService"
TAG_SERVICE = "TagService"

# =============================================================================
# HTTP Server Attributes (set by TracingMiddleware)
# =============================================================================

HTTP_REQUEST_METHOD = "http.request.method"
HTTP_RESPONSE_STATUS_CODE = "http.response.status_code"
HTTP_ROUTE = "http.route"
URL_PATH = "url.path"

# =============================================================================
# Request Attributes (set by RequestTaggingMiddleware)
# =============================================================================

HTTP_REQUEST_BODY_SIZE = "http.request.body.size"
HTTP_RESPONSE_BODY_SIZE = "http.response.body.size"
USER_AGENT = "user.agent"
CLIENT_IP = "client.ip"

# =============================================================================
# Domain Attributes
# =============================================================================

CONTACT_ID = "contact.id"
CONTACT_COMPANY = "contact.company"
GROUP_ID = "group.id"
TAG_ID = "tag.id"
TAG_NAME = "tag.name"
SEARCH_TERM = "search.term"
RESULT_COUNT = "result.count"
OPERATION_TYPE = "operation.type"
PAGE_NUMBER = "page.number"
PAGE_SIZE = "page.size"
TOTAL_COUNT = "total.count"
EMAIL_COUNT = "email.count"
PHONE_COUNT = "phone.count"
ADDRESS_COUNT = "address.count"
CONTACT_COUNT = "contact.count"
HAS_COMPANY = "has.company"

# =============================================================================
# Metrics
# =============================================================================

CONTACTS_CREATED = "contacts.created"
CONTACTS_DELETED = "contacts.deleted"
CONTACT_SEARCHES = "contacts.searches"
CONTACT_SEARCH_DURATION = "contacts.search.duration"
GROUPS_CREATED = "groups.created"
GROUPS_DELETED = "groups.deleted"
TAGS_CREATED = "tags.created"
TAGS_DELETED = "tags.deleted"

# HTTP server metrics
HTTP_SERVER_REQUEST_DURATION = "http.server.request.duration"
HTTP_SERVER_REQUESTS = "http.server.requests"
HTTP_SERVER_ACTIVE_REQUESTS = "http.server.active_requests"
