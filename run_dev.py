#!/usr/bin/env python3
"""
MediaHub Development Server
Runs Flask on port 5000 with debug logging enabled
"""
import os

os.environ.setdefault('DEBUG_LOGGING', 'true')

from mediahub_app import create_app

if __name__ == '__main__':
    app = create_app()
    app.run(
        host='0.0.0.0',
        port=5000,
        debug=True,
        use_reloader=False
    )
