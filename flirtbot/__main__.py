import argparse
import logging
import sys
import time
from dataclasses import replace

import httpx

from .config import Settings, configure_logging
from .hints import HintTicker
from .session import ChatSession
from .web import create_app

log = logging.getLogger("flirtbot")


def serve(args):
    settings = Settings.from_env()
    if args.host:
        settings = replace(settings, host=args.host)
    if args.port:
        settings = replace(settings, port=args.port)
    configure_logging(settings.log_level)

    app = create_app(settings)
    log.info("FlirtBot9000 backend running on port %s", settings.port)
    log.info("Ollama configured for model: %s", settings.ollama_model)
    log.info("Ollama URL: %s", settings.ollama_base_url)
    log.info("CORS enabled for: %s", settings.cors_origin)
    app.run(host=settings.host, port=settings.port, debug=args.debug, threaded=True)


def chat(args):
    configure_logging("WARNING")
    ticker = HintTicker()
    last_tick = time.monotonic()

    with ChatSession(base_url=args.url) as session:
        try:
            session.select_language(args.language)
        except (httpx.HTTPError, ValueError) as exc:
            sys.exit(f"Cannot start chat against {args.url}: {exc}")
        print(session.turns[0].content)
        while True:
            now = time.monotonic()
            ticker.advance(now - last_tick)
            last_tick = now
            print(f"\n💡 {ticker.current}")
            try:
                text = input("you> ").strip()
            except (EOFError, KeyboardInterrupt):
                print()
                return
            if not text:
                continue
            if text == "/quit":
                return
            if text == "/clear":
                session.clear()
                print(session.turns[0].content if session.turns else "")
                continue
            if text.startswith("/lang"):
                _, _, language_id = text.partition(" ")
                try:
                    session.select_language(language_id.strip())
                except ValueError as exc:
                    print(exc)
                    print("Languages: " + ", ".join(session.languages))
                    continue
                print(session.turns[0].content)
                continue

            shown = ""

            def show(turn):
                nonlocal shown
                if turn.content.startswith(shown):
                    sys.stdout.write(turn.content[len(shown):])
                else:
                    sys.stdout.write("\n" + turn.content)
                sys.stdout.flush()
                shown = turn.content

            sys.stdout.write("bot> ")
            session.send(text, on_update=show)
            print()


def main(argv=None):
    parser = argparse.ArgumentParser(prog="flirtbot", description="FlirtBot9000 language practice relay")
    sub = parser.add_subparsers(dest="command")

    serve_p = sub.add_parser("serve", help="run the HTTP relay and browser UI")
    serve_p.add_argument("--host")
    serve_p.add_argument("--port", type=int)
    serve_p.add_argument("--debug", action="store_true")
    serve_p.set_defaults(func=serve)

    chat_p = sub.add_parser("chat", help="chat with a running relay from the terminal")
    chat_p.add_argument("--url", default="http://localhost:3000")
    chat_p.add_argument("--language", default="english")
    chat_p.set_defaults(func=chat)

    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        args = parser.parse_args(["serve"])
    args.func(args)


if __name__ == "__main__":
    main()
