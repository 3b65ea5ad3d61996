# Log events / error codes of the shorten_url handler
INVALID_JSON_BODY = 'client:invalid_json_body'
INVALID_TTL = 'client:invalid_ttl'
SHORTEN_SUCCESS = 'SHORTEN_SUCCESS'
