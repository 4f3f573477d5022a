#!/usr/bin/env python3
"""
Startup script for the Contract Analyzer backend
"""

import os
import sys

from dotenv import load_dotenv
from pydantic import ValidationError

from app import create_app
from contract_analysis.config import AnalyzerConfig
from contract_analysis.exceptions import ConfigurationError


def load_config():
    """Load .env and build the analyzer configuration, exiting on invalid settings."""
    load_dotenv()
    try:
        return AnalyzerConfig()
    except ValidationError as e:
        print(f"❌ Invalid configuration:\n{e}")
        sys.exit(1)


def main():
    print("🚀 Starting Contract Analyzer Backend...")
    print("=" * 50)

    config = load_config()
    if not config.validate_ai_config():
        print("❌ OpenAI API key is not set!")
        print("💡 Set OPENAI_API_KEY (or OPENAI_KEY) in the environment or a .env file.")
        sys.exit(1)

    try:
        app = create_app(config)
    except ConfigurationError as e:
        print(f"❌ {e}")
        sys.exit(1)

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"

    print("\n" + "=" * 50)
    print("🌐 Starting Flask server...")
    print(f"📖 Health check: http://localhost:{port}/health")
    print(f"🔗 Front-end should POST uploads to: http://localhost:{port}/api/analyze")
    print("=" * 50)

    try:
        app.run(host=host, port=port, debug=debug)
    except KeyboardInterrupt:
        print("\n🛑 Server stopped by user.")
    except Exception as e:
        print(f"\n❌ Error starting server: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
