"""Web page generator CLI — providers, models, generate, and dev server.

Usage:
    python cli.py providers                     List enabled providers
    python cli.py models PROVIDER               List a provider's models
    python cli.py generate PROMPT -p P -m M     Generate a page (stdout or --out)
    python cli.py dev                           Start uvicorn with hot-reload

``generate`` talks to a running server when ``--server`` (or
GENERATION_SERVER_URL) is set, otherwise it runs the pipeline in-process.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger("webgen-cli")


def _registry():
    from llm.providers import ProviderRegistry

    return ProviderRegistry.from_env()


def cmd_providers(args):
    """Print enabled providers, one per line."""
    enabled = _registry().list_enabled()
    if not enabled:
        logger.warning("[!] No providers enabled.  Add an API key to .env or start Ollama / LM Studio.")
        return
    for d in enabled:
        tags = ["local" if d.is_local else "remote"]
        if d.native_reasoning:
            tags.append("native reasoning")
        print(f"{d.id.value:<18} {d.name:<12} ({', '.join(tags)})")


def cmd_models(args):
    """Print a provider's models; exit 1 on failure."""
    import generation
    from controller import describe_error
    from errors import GenerationError

    try:
        models = generation.list_models(_registry(), args.provider)
    except GenerationError as e:
        logger.error(describe_error(e, args.provider))
        sys.exit(1)
    for m in models:
        print(m.id if m.display_name == m.id else f"{m.id:<40} {m.display_name}")


def cmd_generate(args):
    """Generate one page.  Reasoning goes to stderr, code to stdout or --out."""
    from controller import GenerationController, GenerationPhase, HttpTransport, LocalTransport
    from schemas import GenerationRequest
    from settings import settings

    server = args.server if args.server is not None else settings.GENERATION_SERVER_URL
    transport = HttpTransport(server) if server else LocalTransport(_registry())

    shown = {"reasoning": 0}

    def on_state(state):
        if not args.show_thinking:
            return
        new = state.reasoning_text[shown["reasoning"]:]
        if new:
            sys.stderr.write(new)
            sys.stderr.flush()
            shown["reasoning"] = len(state.reasoning_text)

    controller = GenerationController(
        transport,
        on_state=on_state,
        notify=lambda message: logger.error(f"[!] {message}"),
    )
    request = GenerationRequest(
        prompt=args.prompt,
        provider=args.provider or "",
        model=args.model or "",
        maxTokens=args.max_tokens,
        systemPromptType=args.mode,
        customSystemPrompt=args.system_prompt,
    )
    state = controller.generate(request)
    if args.show_thinking and shown["reasoning"]:
        sys.stderr.write("\n")

    if state.code_text:
        if args.out:
            Path(args.out).write_text(state.code_text, encoding="utf-8")
            logger.info(f"[+] Wrote {len(state.code_text)} chars to {args.out}")
        else:
            sys.stdout.write(state.code_text)
            if not state.code_text.endswith("\n"):
                sys.stdout.write("\n")

    if args.trace_out:
        from telemetry import TelemetryStore

        # Only in-process runs leave a record here.
        if TelemetryStore.count():
            TelemetryStore.export_jsonl(args.trace_out, append=True)
        else:
            logger.warning("[!] No telemetry recorded (remote server runs keep their own).")

    if state.phase is not GenerationPhase.COMPLETE:
        sys.exit(1)


def cmd_dev(args):
    """Start uvicorn development server with hot-reload."""
    import subprocess

    from settings import settings

    host = args.host or settings.HOST
    port = args.port or settings.PORT

    backend_dir = Path(__file__).resolve().parent
    logger.info(f"Starting dev server at http://{host}:{port}")
    subprocess.run(
        [
            sys.executable, "-m", "uvicorn",
            "main:app",
            "--host", host,
            "--port", str(port),
            "--reload",
        ],
        cwd=str(backend_dir),
        check=False,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webgen",
        description="Generate web pages with interchangeable LLM backends",
    )
    sub = parser.add_subparsers(dest="command", help="Available commands")

    # providers
    sub.add_parser("providers", help="List enabled providers")

    # models
    p_models = sub.add_parser("models", help="List models offered by a provider")
    p_models.add_argument("provider", help="Provider id (e.g. ollama, deepseek)")

    # generate
    p_gen = sub.add_parser("generate", help="Generate a single-file web page")
    p_gen.add_argument("prompt", help="What the page should be")
    p_gen.add_argument("--provider", "-p", help="Provider id")
    p_gen.add_argument("--model", "-m", help="Model id")
    p_gen.add_argument("--max-tokens", type=int, help="Output token bound")
    p_gen.add_argument("--mode", choices=["default", "thinking", "custom"], default="default",
                       help="System prompt mode (default: default)")
    p_gen.add_argument("--system-prompt", help="Custom system prompt (with --mode custom)")
    p_gen.add_argument("--server", help="Generation server URL (default: in-process)")
    p_gen.add_argument("--out", "-o", help="Write the page to this file instead of stdout")
    p_gen.add_argument("--show-thinking", action="store_true", help="Echo model reasoning to stderr")
    p_gen.add_argument("--trace-out", help="Append this run's telemetry record to a JSONL file")

    # dev
    p_dev = sub.add_parser("dev", help="Start development server")
    p_dev.add_argument("--host", help="Bind host")
    p_dev.add_argument("--port", type=int, help="Bind port")

    return parser


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "providers":
        cmd_providers(args)
    elif args.command == "models":
        cmd_models(args)
    elif args.command == "generate":
        cmd_generate(args)
    elif args.command == "dev":
        cmd_dev(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
