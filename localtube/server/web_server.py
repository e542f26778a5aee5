import http.server
import threading

from localtube.config import find_free_port
from localtube.server.api_handler import LibraryHandler


class LibraryHTTPServer(http.server.ThreadingHTTPServer):
    """Threaded HTTP server carrying the MediaLibrary its handlers read from."""
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, server_address, library, handler_class=LibraryHandler, bind_and_activate=True):
        self.library = library
        super().__init__(server_address, handler_class, bind_and_activate=bind_and_activate)


def start_server(library, host="127.0.0.1", port=3000):
    """
    Initializes and starts the multi-threaded HTTP server on a background thread.
    Falls back to the next free port when the configured one is taken.
    """
    server = LibraryHTTPServer((host, port), library, bind_and_activate=False)
    try:
        server.server_bind()
        server.server_activate()
    except OSError as e:
        server.server_close()
        print(f"Error binding to port {port}: {e}")
        new_port = find_free_port(port + 1)
        print(f"Attempting fallback to port {new_port}...")
        server = LibraryHTTPServer((host, new_port), library)

    port_actual = server.server_address[1]
    server_thread = threading.Thread(target=server.serve_forever, daemon=True)
    server_thread.start()

    print(f"Server started on http://{host}:{port_actual}")
    return server, port_actual
