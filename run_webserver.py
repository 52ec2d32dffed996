"""
Run Webserver - Startup Script
Server launcher plus offline export/import of the gallery database.
"""

import os
import sys
import argparse
from pathlib import Path


def _apply_environment(args):
    """Environment must be set before the fpgallery config modules are imported."""
    if args.data_dir:
        os.environ["FPGALLERY_HOME"] = str(Path(args.data_dir).resolve())
    if args.device_url:
        os.environ["FPGALLERY_DEVICE_URL"] = args.device_url
    if args.verify_tls:
        os.environ["FPGALLERY_DEVICE_VERIFY_TLS"] = "1"


def export_gallery(path: str) -> int:
    """Write the persisted gallery to a JSON exchange document."""
    from fpgallery.exchange import dumps_document
    from fpgallery.webserver import BlobDatabase, build_controller

    with BlobDatabase() as db:
        controller = build_controller(db)
        gallery = controller.store.list()
        text = dumps_document(gallery, controller.store.last_capture)

    Path(path).write_text(text, encoding="utf-8")
    print(f"✓ Exported {len(gallery)} users to {path}")
    return 0


def import_gallery(path: str) -> int:
    """Replace the persisted gallery with a JSON exchange document."""
    from fpgallery.webserver import BlobDatabase, build_controller

    content = Path(path).read_bytes()
    with BlobDatabase() as db:
        controller = build_controller(db)
        result = controller.import_(content)

    print(("✓ " if result.ok else "✗ ") + result.message)
    return 0 if result.ok else 1


def main():
    """Start server."""
    parser = argparse.ArgumentParser(description="Fingerprint Gallery WebServer")
    parser.add_argument("--host", help="Server host")
    parser.add_argument("--port", type=int, help="Server port")
    parser.add_argument("--device-url", help="Device service URL (default https://localhost:8443)")
    parser.add_argument("--verify-tls", action="store_true", help="Verify the device service certificate")
    parser.add_argument("--data-dir", help="Directory for database, key file and logs")
    parser.add_argument("--export", metavar="FILE", help="Export the gallery to FILE and exit")
    parser.add_argument("--import", dest="import_file", metavar="FILE", help="Import FILE (replaces the gallery) and exit")

    args = parser.parse_args()
    _apply_environment(args)

    if args.export:
        return export_gallery(args.export)

    if args.import_file:
        return import_gallery(args.import_file)

    from fpgallery.webserver.config import HOST, PORT, VERBOSE

    host = args.host or HOST
    port = args.port or PORT

    # Start server with uvicorn
    import uvicorn

    print()
    print("=" * 70)
    print("STARTING FINGERPRINT GALLERY WEBSERVER")
    print("=" * 70)
    print(f"\n🚀 Server starting on {host}:{port}")
    print(f"   Device service: {os.environ.get('FPGALLERY_DEVICE_URL', 'https://localhost:8443')}")
    print(f"📚 API Docs: http://{host}:{port}/docs")
    print()
    print("Press CTRL+C to stop")
    print("=" * 70)
    print()

    try:
        uvicorn.run(
            "fpgallery.webserver.server:app",
            host=host,
            port=port,
            reload=False,
            workers=1,  # single actor: one process owns the gallery
            log_level="info" if VERBOSE else "warning"
        )
    except KeyboardInterrupt:
        print("\n\nShutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
