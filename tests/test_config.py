import json

import pytest

from sonic_arcade.config import GameBook, load_games
from sonic_arcade.errors import ConfigError

from conftest import CONTRACT


def _write(tmp_path, data):
    f = tmp_path / "games.json"
    f.write_text(json.dumps(data))
    return f


def test_load_games(tmp_path):
    f = _write(tmp_path, {"contract": CONTRACT, "games": {"plinko": {"dest": CONTRACT, "data": "0x01"}}})
    book = load_games(f)
    assert book.contract == CONTRACT
    assert list(book) == ["plinko"]
    assert book.call_for("plinko") == {"dest": CONTRACT, "data": "0x01", "value": "0n"}


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_games(tmp_path / "games.json")


def test_invalid_json(tmp_path):
    f = tmp_path / "games.json"
    f.write_text("{")
    with pytest.raises(ConfigError):
        load_games(f)


def test_contract_must_be_address(tmp_path):
    f = _write(tmp_path, {"contract": "nope", "games": {}})
    with pytest.raises(ConfigError, match="contract"):
        load_games(f)


def test_game_missing_fields(tmp_path):
    f = _write(tmp_path, {"contract": CONTRACT, "games": {"mines": {"dest": CONTRACT}}})
    with pytest.raises(ConfigError, match="mines"):
        load_games(f)


class TestGameBook:
    def test_unknown_game(self):
        with pytest.raises(ConfigError, match="roulette"):
            GameBook(CONTRACT, {}).call_for("roulette")

    def test_read_only(self):
        source = {"plinko": {"dest": CONTRACT, "data": "0x01", "value": "0n"}}
        book = GameBook(CONTRACT, source)
        source["plinko"]["data"] = "0xff"
        book.call_for("plinko")["data"] = "0xee"
        assert book.call_for("plinko")["data"] == "0x01"
        assert "plinko" in book and len(book) == 1


def test_top_level_must_be_object(tmp_path):
    f = _write(tmp_path, [{"contract": CONTRACT}])
    with pytest.raises(ConfigError, match="expected an object"):
        load_games(f)


def test_game_entry_must_be_object(tmp_path):
    f = _write(tmp_path, {"contract": CONTRACT, "games": {"plinko": "0x01"}})
    with pytest.raises(ConfigError, match="plinko must be an object"):
        load_games(f)


def test_games_must_be_object(tmp_path):
    f = _write(tmp_path, {"contract": CONTRACT, "games": ["plinko"]})
    with pytest.raises(ConfigError, match="'games' must be an object"):
        load_games(f)
