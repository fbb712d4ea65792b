#!/usr/bin/env python3
"""
Backend startup wrapper for the planboard service.
"""
import argparse
import os
import sys

# Add workspace to path
workspace_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, workspace_root)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run the planboard API server")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args(argv)

    print(f"[Backend] Starting planboard on http://{args.host}:{args.port}")
    print("[Backend] Press CTRL+C to stop")

    import uvicorn
    try:
        uvicorn.run(
            "planboard.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level="info",
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\n[Backend] Shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
