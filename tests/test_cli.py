"""
Tests for the command line interface.
"""

import json
import pytest
from cadlang.__main__ import main, parse_param, seed_memory


@pytest.fixture
def script(tmp_path):
    def write(text, name="part.cad"):
        path = tmp_path / name
        path.write_text(text)
        return str(path)
    return write


class TestParseParam:

    def test_types(self):
        assert parse_param("a=3") == ("a", 3)
        assert parse_param("a=2.5") == ("a", 2.5)
        assert parse_param("flag=true") == ("flag", True)
        assert parse_param("name='bolt'") == ("name", "bolt")
        assert parse_param(" w = 4 ") == ("w", 4)

    def test_missing_equals(self):
        with pytest.raises(ValueError):
            parse_param("a")

    def test_seed_memory(self):
        memory = seed_memory(["a=3", "b=x"])
        assert memory.lookup("a").data == 3
        assert memory.lookup("b").data == "x"


class TestRunCommand:

    def test_run(self, script, capsys):
        path = script("const a = 3\nconst b = a + 4\nshow(b)\n")
        assert main(["run", path]) == 0
        out = capsys.readouterr().out
        assert "b = 7" in out
        assert "Commands (0):" in out

    def test_run_json(self, script, capsys):
        path = script("const s = startSketchAt([0, 0])\nconst p = extrude(2, close(lineTo([1, 0], s)))\n")
        assert main(["run", path, "--json"]) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["success"] is True
        assert report["sourceSignature"].startswith("sha256:")
        assert [c["cmd"]["type"] for c in report["commands"]] == [
            "start_path", "extend_path", "close_path", "extrude",
        ]
        assert report["bindings"]["p"]["type"] == "extrudeGroup"

    def test_run_with_vars(self, script, capsys):
        path = script("const v = h * 2\n")
        assert main(["run", path, "--var", "h=5"]) == 0
        assert "v = 10" in capsys.readouterr().out

    def test_run_error(self, script, capsys):
        path = script("show(unknown)\n")
        assert main(["run", path]) == 1
        err = capsys.readouterr().err
        assert "E302" in err
        assert "show(unknown)" in err

    def test_run_error_json(self, script, capsys):
        path = script("show(unknown)\n")
        assert main(["run", path, "--json"]) == 1
        report = json.loads(capsys.readouterr().out)
        assert report["success"] is False
        assert report["error"]["sourceRange"] == [5, 12]

    def test_run_with_config(self, script, tmp_path, capsys):
        path = script("const a = 1 + 2 + 3\n")
        config = tmp_path / "limits.yaml"
        config.write_text("max_steps: 3\n")
        assert main(["run", path, "--config", str(config)]) == 1
        assert "E305" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main(["run", str(tmp_path / "missing.cad")]) == 1
        assert "File not found" in capsys.readouterr().err


class TestCalcCommand:

    def test_calc(self, capsys):
        assert main(["calc", "legLen(5, 3)"]) == 0
        assert capsys.readouterr().out.strip() == "4"

    def test_calc_with_vars(self, capsys):
        assert main(["calc", "a * 2", "--var", "a=3"]) == 0
        assert capsys.readouterr().out.strip() == "6"

    def test_calc_error(self, capsys):
        assert main(["calc", "1 +"]) == 1
        assert capsys.readouterr().out.strip() == "NAN"


class TestSourceCommands:

    def test_tokens(self, script, capsys):
        assert main(["tokens", script("const a = 1")]) == 0
        out = capsys.readouterr().out
        assert "CONST" in out
        assert "EOF" in out

    def test_ast(self, script, capsys):
        assert main(["ast", script("const a = 1")]) == 0
        out = capsys.readouterr().out
        assert "Program" in out
        assert "VariableDeclaration" in out

    def test_fmt(self, script, capsys):
        assert main(["fmt", script("const   a=(1+2)*3\nfn f = (x) => {\nreturn x\n}")]) == 0
        assert capsys.readouterr().out == "const a = (1 + 2) * 3\nfn f = (x) => {\n  return x\n}\n"

    def test_fmt_normalize(self, script, capsys):
        assert main(["fmt", script("const a = --b\n"), "--normalize"]) == 0
        assert capsys.readouterr().out == "const a = b\n"

    def test_fmt_normalize_config(self, script, tmp_path, capsys):
        config = tmp_path / "fmt.yaml"
        config.write_text("collapse_double_negation: false\n")
        path = script("const a = --b\n")
        assert main(["fmt", path, "--normalize", "--config", str(config)]) == 0
        assert capsys.readouterr().out == "const a = --b\n"

    def test_syntax_error(self, script, capsys):
        assert main(["ast", script("const = 1")]) == 1
        assert "E101" in capsys.readouterr().err
