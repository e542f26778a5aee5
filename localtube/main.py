import argparse
import time
import webbrowser

from localtube.config import AppSettings, ConfigManager
from localtube.core.errors import FolderError
from localtube.core.library import MediaLibrary
from localtube.server.web_server import start_server


def dashboard_url(host, port):
    """The server has no page at /, so the browser opens the library listing."""
    if host in ("0.0.0.0", "::", ""):
        host = "127.0.0.1"
    return f"http://{host}:{port}/api/videos"


def run_server(args_list=None):
    parser = argparse.ArgumentParser(description="LocalTube - local video library server")
    parser.add_argument("--host", help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Port to listen on (default: 3000)")
    parser.add_argument("--folder", action="append", default=[], help="Add a folder to the library (repeatable).")
    parser.add_argument("--no-scan", action="store_true", help="Skip the initial scan; the first /api/videos call scans.")
    parser.add_argument("--no-browser", action="store_true", help="Do not open the browser.")
    args = parser.parse_args(args_list)

    print("--- LocalTube ---")

    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    settings = AppSettings(**overrides)
    library = MediaLibrary(ConfigManager(settings))

    for folder in args.folder:
        try:
            added = library.state.add_folder(folder)
            print(f"📁 Added folder: {added}")
        except FolderError as e:
            print(f"⚠️ {folder}: {e}")

    # 1. Initial scan
    if not args.no_scan:
        try:
            catalog = library.refresh()
            print(f"Initial scan complete... Found {len(catalog)} videos.")
        except KeyboardInterrupt:
            print("\n⚠️ Scan interrupted.")

    # 2. Serve
    server, port = start_server(library, settings.host, settings.port)
    url = dashboard_url(settings.host, port)
    if not args.no_browser:
        print(f"Opening: {url}")
        webbrowser.open(url)

    # Keep alive
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nStopping server...")
        server.shutdown()
        server.server_close()
        library.probe.shutdown()
        print("Server stopped. Goodbye!")


if __name__ == "__main__":
    run_server()
