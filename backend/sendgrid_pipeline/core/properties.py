"""
Stable configuration property keys.

These names are what users type in source configs and what validation
failures point at, so renaming one breaks every config and UI built on it.
"""

PROPERTY_REFERENCE_NAME = "referenceName"
PROPERTY_AUTH_TYPE = "authType"
PROPERTY_SENDGRID_API_KEY = "sendGridApiKey"
PROPERTY_AUTH_USERNAME = "username"
PROPERTY_AUTH_PASSWORD = "password"
PROPERTY_DATA_SOURCE_TYPES = "dataSourceTypes"
PROPERTY_DATA_SOURCE = "dataSource"
PROPERTY_DATA_SOURCE_MARKETING = PROPERTY_DATA_SOURCE + "Marketing"
PROPERTY_DATA_SOURCE_STATS = PROPERTY_DATA_SOURCE + "Stats"
PROPERTY_DATA_SOURCE_SUPPRESSIONS = PROPERTY_DATA_SOURCE + "Suppressions"
PROPERTY_DATA_SOURCE_FIELDS = "dataSourceFields"
PROPERTY_START_DATE = "start_date"
PROPERTY_END_DATE = "end_date"
PROPERTY_STAT_CATEGORIES = "statCategories"

# Arguments a catalog object can require or accept, in request order
REQUEST_ARGUMENT_PROPERTIES = (
    PROPERTY_START_DATE,
    PROPERTY_END_DATE,
    PROPERTY_STAT_CATEGORIES,
)

# Mail sink
PROPERTY_MAIL_SUBJECT = "mailSubject"
PROPERTY_FROM = "from"
PROPERTY_RECIPIENT_ADDRESS_SOURCE = "recipientAddressSource"
PROPERTY_RECIPIENT_ADDRESSES = "recipientAddresses"
PROPERTY_RECIPIENT_COLUMN = "recipientColumnName"
PROPERTY_BODY_COLUMN = "bodyColumnName"
PROPERTY_REPLY_TO = "replyTo"
PROPERTY_FOOTER_ENABLE = "footerEnable"
PROPERTY_FOOTER_HTML = "footerHTML"
PROPERTY_SANDBOX_MODE = "sandboxMode"
PROPERTY_CLICK_TRACKING = "clickTracking"
PROPERTY_OPEN_TRACKING = "openTracking"
PROPERTY_SUBSCRIPTION_TRACKING = "subscriptionTracking"
