import uuid

from app.agents.chat import EMPTY_REPLY, condense_reply, portfolio_intent
from app.agents.schemas import ModelReply
from app.db.models.holding import Holding
from tests.conftest import FakeLLM

PORTFOLIO_ID = str(uuid.uuid4())


def test_condense_reply_cleans_spacing():
    assert condense_reply("  Price is   up .\n\nVolume , too . . ") == "Price is up. Volume, too."


def test_condense_reply_cuts_at_last_sentence():
    sentence = "Revenue grew strongly this quarter. "
    text = sentence * 12
    out = condense_reply(text)
    assert len(out) <= 300
    assert out.endswith("quarter.")


def test_portfolio_intent():
    assert portfolio_intent("Please ADD to portfolio") == "added"
    assert portfolio_intent("remove from portfolio now") == "removed"
    assert portfolio_intent("how is it doing?") is None


def test_chat_reply(client, llm_box):
    llm_box["llm"] = FakeLLM(ModelReply(text="- P/E is 30 .\n- Margin strong"))

    res = client.post("/ticker-chat", json={
        "ticker": "AAPL",
        "message": "P/E?",
        "history": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
    })

    assert res.status_code == 200
    body = res.json()
    assert body["response"] == "- P/E is 30. - Margin strong"
    assert body["ticker"] == "AAPL"
    assert body["is_truncated"] is False
    assert body["timestamp"]
    payload = llm_box["llm"].payloads[0]
    assert payload["max_tokens"] == 150
    assert [m["role"] for m in payload["messages"]] == ["system", "user", "assistant", "user"]


def test_long_reply_is_flagged_truncated(client, llm_box):
    llm_box["llm"] = FakeLLM(ModelReply(text="x" * 295))
    res = client.post("/ticker-chat", json={"ticker": "AAPL", "message": "Analyze the balance sheet"})
    assert res.json()["is_truncated"] is True


def test_empty_reply_becomes_apology(client, llm_box):
    llm_box["llm"] = FakeLLM(ModelReply(text=""))
    res = client.post("/ticker-chat", json={"ticker": "AAPL", "message": "hello"})
    assert res.json()["response"] == EMPTY_REPLY


def test_required_fields(client, llm_box):
    assert client.post("/ticker-chat", json={"message": "hi"}).status_code == 400
    assert client.post("/ticker-chat", json={"ticker": "AAPL"}).status_code == 400
    res = client.post("/ticker-chat", json={"ticker": "AAPL", "message": "hi", "history": [{"role": "robot"}]})
    assert res.status_code == 400
    assert llm_box["llm"].calls == 0


def test_add_to_portfolio_inserts_one_share(client, llm_box, db):
    res = client.post("/ticker-chat", json={
        "ticker": "msft", "message": "add to portfolio", "portfolioId": PORTFOLIO_ID,
    })

    assert res.status_code == 200
    assert res.json()["success"] is True
    row = db.rows_of(Holding)[0]
    assert (row.ticker, row.quantity, row.average_price) == ("MSFT", 1, 400.0)
    assert str(row.portfolio_id) == PORTFOLIO_ID
    assert llm_box["llm"].calls == 0


def test_remove_from_portfolio(client, db):
    db.delete_count = 2
    res = client.post("/ticker-chat", json={
        "ticker": "AAPL", "message": "remove from portfolio", "portfolioId": PORTFOLIO_ID,
    })
    assert res.status_code == 200
    assert "removed 2 holding(s) of AAPL" in res.json()["message"]
    assert db.commits == 1


def test_portfolio_intent_requires_portfolio_id(client):
    res = client.post("/ticker-chat", json={"ticker": "AAPL", "message": "add to portfolio"})
    assert res.status_code == 400
    assert res.json()["error"] == "Portfolio ID is required for this operation"
