#!/usr/bin/env python3
"""
Production runner for Togather
- Serves the API with waitress
- Loads .env for GOOGLE_MAPS_API_KEY and other settings

Usage:
  python3 run_prod.py

Environment:
  PORT=8000 (default)        # Port to bind
  HOST=0.0.0.0 (default)     # Host interface
  GOOGLE_MAPS_API_KEY=...    # Required for meeting point computation
  WSGI_THREADS=8             # waitress worker threads
  TRUST_PROXY_HEADERS=1      # honour X-Forwarded-* from one proxy hop
"""

import os

from waitress import serve
from werkzeug.middleware.proxy_fix import ProxyFix

from togather.app import configure_logging, create_app
from togather.config import Settings

settings = Settings.from_env()
configure_logging(settings)
application = create_app(settings)

# Respect reverse proxy headers (X-Forwarded-*) when behind a proxy/HTTPS terminator
if os.getenv('TRUST_PROXY_HEADERS', '1') not in ('0', 'false', 'False', 'no', 'off'):
    application.wsgi_app = ProxyFix(
        application.wsgi_app,
        x_for=int(os.getenv('PROXY_FIX_X_FOR', '1')),
        x_proto=int(os.getenv('PROXY_FIX_X_PROTO', '1')),
        x_host=int(os.getenv('PROXY_FIX_X_HOST', '1')),
    )


def main():
    host = os.getenv('HOST', '0.0.0.0')
    try:
        port = int(os.getenv('PORT', '8000'))
    except ValueError:
        port = 8000

    if not settings.has_api_key:
        print("\n" + "="*60)
        print("Warning: GOOGLE_MAPS_API_KEY is not configured.")
        print("The API will start, but /compute-location will answer 500.")
        print("Set it in your environment or .env file.")
        print("="*60 + "\n")

    print(f"\n🚀 Starting Togather (prod) on http://{host}:{port}")
    serve(application, host=host, port=port, threads=int(os.getenv('WSGI_THREADS', '8')))


if __name__ == '__main__':
    main()
