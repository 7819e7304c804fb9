"""Tests for CLI commands (providers, models, generate) and argument parsing."""

from unittest.mock import MagicMock, patch

import pytest

from cli import build_parser, main
from controller import GenerationPhase, GenerationState
from errors import ProviderUnreachable
from llm.providers import ModelSummary, ProviderRegistry


# ═══════════════════════════════════════════════════════════════════════════
#  Parser
# ═══════════════════════════════════════════════════════════════════════════

class TestParser:
    def test_generate_arguments(self):
        args = build_parser().parse_args(
            ["generate", "a page", "-p", "ollama", "-m", "qwen3:8b", "--max-tokens", "512",
             "--mode", "thinking", "--show-thinking"]
        )
        assert args.command == "generate"
        assert args.prompt == "a page"
        assert args.provider == "ollama"
        assert args.max_tokens == 512
        assert args.mode == "thinking"
        assert args.show_thinking is True
        assert args.server is None

    def test_mode_is_restricted(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["generate", "x", "--mode", "poetry"])

    def test_no_command_prints_help(self, capsys):
        main([])
        assert "usage: webgen" in capsys.readouterr().out


# ═══════════════════════════════════════════════════════════════════════════
#  providers / models
# ═══════════════════════════════════════════════════════════════════════════

class TestProvidersCommand:
    def test_lists_enabled(self, capsys):
        with patch("cli._registry", return_value=ProviderRegistry(env={"DEEPSEEK_API_KEY": "k"})):
            main(["providers"])
        out = capsys.readouterr().out.splitlines()
        assert out[0].startswith("deepseek")
        assert "native reasoning" in out[0]
        assert any(line.startswith("ollama") and "local" in line for line in out)

    def test_none_enabled(self, capsys):
        registry = ProviderRegistry(env={"DISABLED_PROVIDERS": "ollama,lm_studio"})
        with patch("cli._registry", return_value=registry):
            main(["providers"])
        assert capsys.readouterr().out == ""


class TestModelsCommand:
    def test_prints_models(self, capsys):
        models = [ModelSummary("qwen3:8b", "qwen3:8b"), ModelSummary("claude-x", "Claude X")]
        with patch("cli._registry", return_value=ProviderRegistry(env={})), \
             patch("generation.list_models", return_value=models):
            main(["models", "ollama"])
        out = capsys.readouterr().out.splitlines()
        assert out[0] == "qwen3:8b"
        assert out[1].startswith("claude-x") and out[1].endswith("Claude X")

    def test_failure_exits_1(self):
        error = ProviderUnreachable("down", provider_id="ollama")
        with patch("cli._registry", return_value=ProviderRegistry(env={})), \
             patch("generation.list_models", side_effect=error):
            with pytest.raises(SystemExit) as exc:
                main(["models", "ollama"])
        assert exc.value.code == 1


# ═══════════════════════════════════════════════════════════════════════════
#  generate
# ═══════════════════════════════════════════════════════════════════════════

def _controller(final: GenerationState):
    controller = MagicMock()
    controller.generate.return_value = final
    return controller


class TestGenerateCommand:
    def test_writes_code_to_stdout(self, capsys):
        final = GenerationState(code_text="<p>hi</p>", phase=GenerationPhase.COMPLETE, is_complete=True)
        with patch("controller.GenerationController", return_value=_controller(final)), \
             patch("cli._registry", return_value=ProviderRegistry(env={})):
            main(["generate", "a page", "-p", "ollama", "-m", "qwen3:8b"])
        assert capsys.readouterr().out == "<p>hi</p>\n"

    def test_writes_code_to_file(self, tmp_path):
        out = tmp_path / "page.html"
        final = GenerationState(code_text="<p>hi</p>\n", phase=GenerationPhase.COMPLETE)
        with patch("controller.GenerationController", return_value=_controller(final)), \
             patch("cli._registry", return_value=ProviderRegistry(env={})):
            main(["generate", "a page", "-p", "ollama", "-m", "m", "--out", str(out)])
        assert out.read_text(encoding="utf-8") == "<p>hi</p>\n"

    def test_failure_exits_1(self):
        final = GenerationState(phase=GenerationPhase.FAILED, error="Cannot connect to Ollama.")
        with patch("controller.GenerationController", return_value=_controller(final)), \
             patch("cli._registry", return_value=ProviderRegistry(env={})):
            with pytest.raises(SystemExit) as exc:
                main(["generate", "a page", "-p", "ollama", "-m", "m"])
        assert exc.value.code == 1

    def test_server_flag_selects_http_transport(self):
        final = GenerationState(phase=GenerationPhase.COMPLETE)
        with patch("controller.GenerationController", return_value=_controller(final)) as ctor:
            main(["generate", "a page", "-p", "ollama", "-m", "m", "--server", "http://srv:8000"])
        transport = ctor.call_args.args[0]
        assert type(transport).__name__ == "HttpTransport"
        assert transport.base_url == "http://srv:8000"
