from slayer_bot.utils import helpers
from slayer_bot.utils.items import Item
from slayer_bot.utils.rewards import Currency


def test_parse_page():
    assert helpers.parse_page(None) == 1
    assert helpers.parse_page("abc") == 1
    assert helpers.parse_page("0") == 1
    assert helpers.parse_page("-3") == 1
    assert helpers.parse_page(" 3 ") == 3


def test_format_currency_and_drops():
    assert helpers.format_currency(10, Currency.GOLD).endswith("10 gold")
    assert helpers.format_drops([]) == "No drops."
    assert "Bone x2" in helpers.format_drops([Item(name="Bone", quantity=2)])


def test_make_embed():
    e = helpers.make_embed("Title", "Body", 0x00FF00)
    assert e.title == "Title"
    assert e.description == "Body"
    assert e.colour.value == 0x00FF00
