import os
import sys
import unittest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

os.environ["FLOWKIT_AUTH_URL"] = ""

from fastapi.testclient import TestClient

from app import main


class TestApi(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(main.app)
        self.conditions = [
            {"stepRef": "step1", "fieldRef": "status", "operator": "equals", "value": "APPROVED"},
            {"stepRef": "step1", "fieldRef": "amount", "operator": ">=", "value": 100},
        ]

    def test_health(self) -> None:
        res = self.client.get("/health")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), {"ok": True})

    def test_evaluate_conditions(self) -> None:
        res = self.client.post(
            "/conditions/evaluate",
            json={"conditions": self.conditions[:1], "data": {"step1": {"status": "APPROVED"}}},
        )
        self.assertEqual(res.status_code, 200)
        payload = res.json()
        self.assertTrue(payload["ok"])
        self.assertTrue(payload["result"])

    def test_evaluate_conditions_fail_closed(self) -> None:
        res = self.client.post("/conditions/evaluate", json={"conditions": self.conditions, "data": {}})
        self.assertFalse(res.json()["result"])

    def test_evaluate_non_text_data_arrives_as_text(self) -> None:
        # 150 arrives as "150", compared to 100 as text
        res = self.client.post(
            "/conditions/evaluate",
            json={"conditions": self.conditions, "data": {"step1": {"status": "APPROVED", "amount": 150}}},
        )
        self.assertTrue(res.json()["result"])

    def test_invalid_body(self) -> None:
        res = self.client.post("/conditions/evaluate", json=[1, 2])
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["code"], "REQUEST_INVALID")

    def test_values_lookup(self) -> None:
        doc = {"a": {"b": {"c": 999}, "n": None}}
        res = self.client.post("/values/lookup", json={"document": doc, "path": "a.b.c"})
        self.assertEqual(res.json()["value"], 999)
        self.assertEqual(res.json()["text"], "999")
        res = self.client.post("/values/lookup", json={"document": doc, "path": "a.x.c"})
        self.assertFalse(res.json()["found"])
        res = self.client.post("/values/lookup", json={"document": doc, "path": "a.n"})
        self.assertTrue(res.json()["found"])
        self.assertIsNone(res.json()["value"])
        res = self.client.post("/values/lookup", json={"document": doc})
        self.assertEqual(res.status_code, 400)

    def test_redirection_resolve(self) -> None:
        res = self.client.post(
            "/redirections/resolve",
            json={"redirection": {"parameters": {"name": "NewName"}, "name": "OldName", "targetStep": "s9"}},
        )
        payload = res.json()
        self.assertEqual(payload["name"], "NewName")
        self.assertEqual(payload["target_step"], "s9")

    def test_redirection_plan(self) -> None:
        redirections = [{"name": "Approve", "targetStep": "done", "conditions": self.conditions[:1]}]
        res = self.client.post(
            "/redirections/plan",
            json={"redirections": redirections, "data": {"step1": {"status": "APPROVED"}}},
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["plan"]["target_step"], "done")
        res = self.client.post("/redirections/plan", json={"redirections": "nope"})
        self.assertEqual(res.status_code, 400)

    def test_content_html(self) -> None:
        res = self.client.post("/content/html", json={"text": "a\nb"})
        self.assertEqual(res.json()["html"], "a<br/>b")
        res = self.client.post("/content/html", json={"text": "a\nb", "template": "<p>{{content}}</p>"})
        self.assertEqual(res.json()["html"], "<p>a<br/>b</p>")

    def test_compress_round_trip(self) -> None:
        res = self.client.post("/content/compress", json={"text": "hello hello hello"})
        data = res.json()["data"]
        res = self.client.post("/content/decompress", json={"data": data})
        self.assertEqual(res.json()["text"], "hello hello hello")

    def test_decompress_errors(self) -> None:
        res = self.client.post("/content/decompress", json={"data": "%%%"})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"][0]["code"], "COMPRESSION_INVALID_BASE64")
        res = self.client.post("/content/decompress", json={"data": "aGVsbG8="})
        self.assertEqual(res.json()["errors"][0]["code"], "COMPRESSION_INVALID_GZIP")

    def test_me_without_auth_is_unknown(self) -> None:
        res = self.client.get("/me")
        self.assertEqual(res.json()["actor"]["user_name"], "unknown_user")

    def test_audit(self) -> None:
        res = self.client.post("/records/audit", json={"record": None})
        record = res.json()["record"]
        self.assertEqual(record["creator_name"], "unknown_user")
        self.assertIn("creation_date", record)
        res = self.client.post("/records/audit", json={"record": {"id": 1}, "record_id": 1})
        self.assertIn("modification_date", res.json()["record"])
        res = self.client.post("/records/audit", json={"record": [1]})
        self.assertEqual(res.status_code, 400)


if __name__ == "__main__":
    unittest.main()
