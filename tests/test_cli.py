"""Tests for the scoreapp command line."""

import functools
import io

import pytest

import scoreapp
from cli.prompts import confirm_action, prompt_new_password
from cli.score import score_stream
from scoreme.auth import require_operator, set_operator_password
from scoreme.scorer import ScoreResult


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Leave the process-wide log handlers alone while capturing output."""
    monkeypatch.setattr(scoreapp, "configure_logging", lambda debug=False: None)


@pytest.fixture
def index_args(tmp_path):
    return ["--backend", "tree", "--datadir", str(tmp_path / "data"), "--prefixlen", "4"]


@pytest.fixture
def built_index(corpus_file, index_args):
    assert scoreapp.main(["build", "--passwd", corpus_file] + index_args) == 0
    return index_args


@pytest.fixture
def fast_hashing(monkeypatch):
    monkeypatch.setattr("scoreme.auth.PBKDF2_ITERATIONS", 1000)


class TestBuildCommand:
    """Test the build subcommand."""

    def test_build(self, corpus_file, index_args, tmp_path, capsys):
        assert scoreapp.main(["build", "--passwd", corpus_file] + index_args) == 0
        out = capsys.readouterr().out
        assert f"Update {tmp_path / 'data'}" in out
        assert "hashes indexed" in out
        assert (tmp_path / "data").is_dir()

    def test_build_kv(self, corpus_file, tmp_path):
        db = tmp_path / "index.db"
        args = ["build", "--passwd", corpus_file, "--backend", "kv", "--dbname", str(db), "--bucketname", "b2"]
        assert scoreapp.main(args) == 0
        assert db.exists()

    def test_missing_corpus(self, index_args, tmp_path, capsys):
        assert scoreapp.main(["build", "--passwd", str(tmp_path / "nope")] + index_args) == 1
        assert "not found" in capsys.readouterr().out

    def test_existing_index_needs_confirmation(self, built_index, corpus_file, monkeypatch, capsys):
        monkeypatch.setattr("cli.build.confirm_action", lambda prompt: False)
        assert scoreapp.main(["build", "--passwd", corpus_file] + built_index) == 1
        assert "Build canceled." in capsys.readouterr().out

    def test_existing_index_with_yes(self, built_index, corpus_file):
        assert scoreapp.main(["build", "--passwd", corpus_file, "-y"] + built_index) == 0

    def test_malformed_corpus(self, tmp_path, index_args, capsys):
        corpus = tmp_path / "bad"
        corpus.write_text("5BAA61E4C9B93F3F0682250B6CF8331B7EE68FD8:1\nnot a line\n")
        assert scoreapp.main(["build", "--passwd", str(corpus)] + index_args) == 1
        assert f"Build aborted at {corpus}:2" in capsys.readouterr().out

    def test_invalid_prefix_len(self, corpus_file, tmp_path, capsys):
        args = ["build", "--passwd", corpus_file, "--datadir", str(tmp_path), "--prefixlen", "0"]
        assert scoreapp.main(args) == 2
        assert "Invalid configuration" in capsys.readouterr().err


class TestScoreCommand:
    """Test the score subcommand."""

    def test_score_file(self, built_index, tmp_path, capsys):
        candidates = tmp_path / "candidates"
        candidates.write_bytes(b"hunter2\nnot-in-the-corpus\n")
        assert scoreapp.main(["score", "--filename", str(candidates)] + built_index) == 0
        assert capsys.readouterr().out.strip().endswith("Score is -1 (0.50).")

    def test_score_stdin(self, built_index, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(b"password\r\npassword\r\n")))
        assert scoreapp.main(["score"] + built_index) == 0
        out = capsys.readouterr().out
        # -2 baseline for two submissions, +1 for the hit
        assert "Score is -1 (-1.00)." in out

    def test_per_line_policy(self, built_index, tmp_path, capsys):
        candidates = tmp_path / "candidates"
        candidates.write_bytes(b"letmein\nletmein\n")
        args = ["score", "--filename", str(candidates), "--policy", "per_line", "--point", "3"]
        assert scoreapp.main(args + built_index) == 0
        assert "Score is 6 (6.00)." in capsys.readouterr().out

    def test_missing_index(self, index_args, tmp_path, capsys):
        candidates = tmp_path / "candidates"
        candidates.write_bytes(b"hunter2\n")
        assert scoreapp.main(["score", "--filename", str(candidates)] + index_args) == 1
        assert "build the index first" in capsys.readouterr().out

    def test_missing_candidates_file(self, built_index, tmp_path):
        assert scoreapp.main(["score", "--filename", str(tmp_path / "nope")] + built_index) == 1

    def test_timeout_is_reported(self, built_index, monkeypatch, capsys, tmp_path):
        partial = ScoreResult(score=-4, bonus=0.0, partial=True, looked_up=1, total=4)
        monkeypatch.setattr("cli.score.score_stream", lambda config, stream, source="stdin": partial)
        candidates = tmp_path / "candidates"
        candidates.write_bytes(b"a\nb\nc\nd\n")
        args = ["score", "--filename", str(candidates), "--timeout", "2"]
        assert scoreapp.main(args + built_index) == 0
        assert capsys.readouterr().out.splitlines() == ["Timeout (2s)", "Score is -4 (0.00)."]


class TestNoCheat:
    """Test the operator gate in front of scoring."""

    @pytest.fixture
    def candidates(self, tmp_path):
        path = tmp_path / "candidates"
        path.write_bytes(b"hunter2\n")
        return str(path)

    @pytest.fixture
    def operator_file(self, tmp_path, fast_hashing):
        path = str(tmp_path / "operator.hash")
        set_operator_password("correct-operator-pw", path)
        return path

    def test_wrong_password(self, built_index, candidates, operator_file, monkeypatch, capsys):
        gate = functools.partial(require_operator, operator_file, prompt=lambda _: "guess")
        monkeypatch.setattr("cli.score.require_operator", gate)
        assert scoreapp.main(["score", "--nocheat", "--filename", candidates] + built_index) == 1
        out = capsys.readouterr().out
        assert "Access Denied" in out
        assert "Score is" not in out

    def test_right_password(self, built_index, candidates, operator_file, monkeypatch, capsys):
        gate = functools.partial(require_operator, operator_file, prompt=lambda _: "correct-operator-pw")
        monkeypatch.setattr("cli.score.require_operator", gate)
        assert scoreapp.main(["score", "--nocheat", "--filename", candidates] + built_index) == 0
        assert "Score is 0 (0.50)." in capsys.readouterr().out


class TestCheckCommand:
    """Test the single-password check."""

    def test_compromised(self, built_index, capsys):
        assert scoreapp.main(["check", "--password", "hunter2"] + built_index) == 2
        assert "COMPROMISED" in capsys.readouterr().out

    def test_safe(self, built_index, capsys):
        assert scoreapp.main(["check", "--password", "xK9#mL2$pQ7@nR4!"] + built_index) == 0
        assert "SAFE" in capsys.readouterr().out


class TestParser:
    def test_rules_in_help(self):
        assert "-1 for each password not in the breach corpus" in scoreapp.build_parser().epilog

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            scoreapp.main([])


class TestPrompts:
    """Test the shared prompt helpers."""

    def test_confirm_yes(self):
        assert confirm_action("Proceed?", ask=lambda _: " Y ")

    def test_confirm_no(self):
        assert not confirm_action("Proceed?", ask=lambda _: "nope")

    def test_confirm_prompt_text(self):
        asked = []
        confirm_action("Append?", ask=lambda text: asked.append(text) or "y")
        assert asked == ["Append? (y/n): "]

    def test_new_password_retries(self, capsys):
        answers = iter(["one-password", "two-password", "short", "short", "long-enough", "long-enough"])
        assert prompt_new_password(ask=lambda _: next(answers)) == "long-enough"
        out = capsys.readouterr().out
        assert "do not match" in out
        assert "too short" in out


class TestServeCommand:
    def test_serve_uses_cli_config(self, index_args, tmp_path, monkeypatch):
        import api.dependencies

        calls = []
        monkeypatch.setattr("api.dependencies._config", None)
        monkeypatch.setattr("uvicorn.run", lambda app, host, port: calls.append((host, port)))
        assert scoreapp.main(["serve", "--port", "9999", "--point", "5"] + index_args) == 0

        assert calls == [("127.0.0.1", 9999)]
        config = api.dependencies.get_config()
        assert config.datadir == str(tmp_path / "data")
        assert config.point_value == 5


class RecordingStore:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class TestScoreStreamStoreLifetime:
    """The store stays open while a timed-out lookup may still be using it."""

    @pytest.fixture
    def patched(self, monkeypatch):
        store = RecordingStore()
        outcome = {}

        class FixedScorer:
            def __init__(self, engine, config):
                pass

            def score(self, lines):
                return outcome["result"]

        monkeypatch.setattr("cli.score.open_store", lambda config: store)
        monkeypatch.setattr("cli.score.Scorer", FixedScorer)
        return store, outcome

    def test_closed_after_complete_run(self, patched, tree_config):
        store, outcome = patched
        outcome["result"] = ScoreResult(score=-1, bonus=0.0, partial=False, looked_up=1, total=1)
        score_stream(tree_config, io.BytesIO(b"a\n"))
        assert store.closed

    def test_left_open_after_timeout(self, patched, tree_config):
        store, outcome = patched
        outcome["result"] = ScoreResult(score=-1, bonus=0.0, partial=True, looked_up=0, total=1)
        assert score_stream(tree_config, io.BytesIO(b"a\n")).partial
        assert not store.closed
