#!/usr/bin/env python3
"""
Main entry point for the Togather API (development server)
"""

import os

from togather.app import create_app

app = create_app()

if __name__ == '__main__':
    app.run(debug=True, host=os.getenv('HOST', '0.0.0.0'), port=int(os.getenv('PORT', '5001')))
