# Log events of the redirect_url handler
MISSING_KEY = 'MISSING_KEY'
REDIRECT_SUCCESS = 'REDIRECT_SUCCESS'
