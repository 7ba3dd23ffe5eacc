#!/usr/bin/env python3
"""
Backend startup wrapper for local development.
"""
import os
import sys

# Add workspace to path
workspace_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, workspace_root)


def main() -> None:
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    print("[Backend] Starting Looped backend")
    print(f"[Backend] Server: http://localhost:{port}")
    try:
        uvicorn.run(
            "looped.main:app",
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
            reload=False,
            log_level="info",
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\n[Backend] Shutting down...")


if __name__ == "__main__":
    main()
