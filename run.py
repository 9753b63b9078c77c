"""
Flask runner for the ExamGuard core service
Usage: python run.py [port] [cert_file key_file]
"""
import sys
import ssl

from examguard import create_app


def main():
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 8000

    ssl_context = None
    if len(sys.argv) > 3:
        ssl_context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        ssl_context.load_cert_chain(sys.argv[2], sys.argv[3])

    app = create_app()

    scheme = "HTTPS" if ssl_context else "HTTP"
    print(f"Starting ExamGuard {scheme} server on port {port}...")
    app.run(host='0.0.0.0', port=port, ssl_context=ssl_context, debug=False, use_reloader=False)


if __name__ == '__main__':
    main()
