import json

import pytest

from signalgrid.simulate_from_json import main


BLUEPRINT = {
    "nodes": [
        {"id": 1, "x": 40, "y": 40, "type": "INPUT", "val": 7},
        {"id": "gate", "x": 120, "y": 40, "type": "THRESHOLD", "thresh": 5, "logic": "GT"},
        {"id": "out", "x": 200, "y": 40, "type": "OUTPUT"},
    ],
    "connections": [
        {"fromId": 1, "toId": "gate"},
        {"fromId": "gate", "toId": "out"},
    ],
}


class TestSimulateCli:

    @pytest.fixture(autouse=True)
    def blueprint(self, tmp_path):
        self.path = tmp_path / "ads_network.json"
        self.path.write_text(json.dumps(BLUEPRINT), encoding="utf-8")

    def _rows(self, out):
        return {line.split()[0]: line.split()[-1] for line in out.splitlines()[1:]}

    def test_prints_settled_values(self, capsys):
        assert main([str(self.path)]) == 0
        rows = self._rows(capsys.readouterr().out)
        assert rows == {"1": "7.0", "gate": "7.0", "out": "7.0"}

    def test_override_input(self, capsys):
        assert main([str(self.path), "--set", "1=3"]) == 0
        assert self._rows(capsys.readouterr().out)["out"] == "OFF"

    def test_override_off(self, capsys):
        assert main([str(self.path), "--set", "1=off"]) == 0
        assert self._rows(capsys.readouterr().out)["1"] == "OFF"

    def test_override_non_input(self, capsys):
        assert main([str(self.path), "--set", "gate=3"]) == 1
        assert "not an INPUT node" in capsys.readouterr().err

    def test_override_unknown_node(self, capsys):
        assert main([str(self.path), "--set", "nope=3"]) == 1
        assert "No node with id" in capsys.readouterr().err

    def test_override_malformed(self, capsys):
        assert main([str(self.path), "--set", "1"]) == 1
        assert "ID=VALUE" in capsys.readouterr().err

    def test_writes_settled_blueprint(self, tmp_path, capsys):
        out = tmp_path / "settled.json"
        assert main([str(self.path), "--out", str(out)]) == 0
        document = json.loads(out.read_text(encoding="utf-8"))
        assert [n["val"] for n in document["nodes"]] == [7.0, 7.0, 7.0]
        assert "exportedAt" in document

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.json")]) == 1
        assert "[error] File not found" in capsys.readouterr().err

    def test_directory_as_blueprint(self, tmp_path, capsys):
        assert main([str(tmp_path)]) == 1
        assert "[error] Could not read" in capsys.readouterr().err

    def test_unwritable_out(self, tmp_path, capsys):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        assert main([str(self.path), "--out", str(blocker / "settled.json")]) == 1
        assert "[error] Could not write" in capsys.readouterr().err

    def test_invalid_blueprint(self, capsys):
        self.path.write_text('{"nodes": []}', encoding="utf-8")
        assert main([str(self.path)]) == 1
        assert "[error] Invalid blueprint" in capsys.readouterr().err

    def test_calls_must_be_positive(self, capsys):
        assert main([str(self.path), "--calls", "0"]) == 1
