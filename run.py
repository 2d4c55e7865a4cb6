#!/usr/bin/env python3
"""
Roadside Backend - Main application entry point
"""
from app import create_app
from app.realtime import socketio
import os

app = create_app()

if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('DEBUG', 'False').lower() == 'true'

    socketio.run(
        app,
        host='0.0.0.0',
        port=port,
        debug=debug,
        allow_unsafe_werkzeug=debug,
    )
