import base64
import json
import tempfile
import unittest
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient

from catalog.config import Settings
from catalog.main import create_app
from catalog.utils.exceptions import StoreUnavailableException

JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00catalog-photo\xff\xd9"
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDRcatalog"


def data_url(content: bytes, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64,{base64.b64encode(content).decode()}"


def ecosport(**overrides) -> dict:
    body = {
        "make": "Ford",
        "model": "EcoSport",
        "year": 2019,
        "price": 4200000,
        "mileage": 60000,
        "description": "test",
        "featured": True,
        "images": [],
    }
    body.update(overrides)
    return body


class TestVehicleApi(unittest.TestCase):
    """Runs the HTTP contract against the JSON file store."""

    def settings_for(self, tmp: Path, **overrides) -> Settings:
        values = {
            "STORE_BACKEND": "json",
            "JSON_STORE_PATH": str(tmp / "data" / "vehicles.json"),
            "UPLOAD_DIR": str(tmp / "uploads"),
        }
        values.update(overrides)
        return Settings(**values)

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.upload_dir = self.tmp / "uploads"
        self.client = self.build_client()

    def build_client(self, **overrides) -> TestClient:
        self.app = create_app(self.settings_for(self.tmp, **overrides))
        return TestClient(self.app)

    def tearDown(self):
        self.client.close()
        engine = getattr(self.app.state.store, "engine", None)
        if engine is not None:
            engine.dispose()
        self._tmp.cleanup()

    def ids(self) -> list[int]:
        return [v["id"] for v in self.client.get("/api/vehicles").json()]

    def uploaded_files(self) -> list[str]:
        return sorted(p.name for p in self.upload_dir.iterdir())

    # ─── Scenario ─────────────────────────────────────────────────────────────
    def test_create_list_delete_scenario(self):
        resp = self.client.post("/api/vehicles", json=ecosport())
        self.assertEqual(resp.status_code, 201)
        created = resp.json()
        self.assertEqual(created["id"], 1)
        self.assertEqual(created["make"], "Ford")
        self.assertEqual(created["model"], "EcoSport")
        self.assertEqual(created["year"], 2019)
        self.assertEqual(created["price"], 4200000)
        self.assertTrue(created["featured"])
        self.assertEqual(created["images"], [])

        self.assertEqual(self.client.post("/api/vehicles", json=ecosport()).json()["id"], 2)
        self.assertEqual(self.ids(), [1, 2])

        resp = self.client.delete("/api/vehicles/1")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"success": True})
        self.assertEqual(self.ids(), [2])

        resp = self.client.delete("/api/vehicles/1")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"]["code"], "NOT_FOUND")
        self.assertEqual(resp.json()["message"], "Vehicle not found")

    # ─── Validation ───────────────────────────────────────────────────────────
    def test_missing_make_or_model_is_rejected(self):
        for field in ("make", "model"):
            body = ecosport()
            del body[field]
            resp = self.client.post("/api/vehicles", json=body)
            self.assertEqual(resp.status_code, 400)
            payload = resp.json()
            self.assertFalse(payload["success"])
            self.assertEqual(payload["error"]["code"], "VALIDATION_ERROR")
            self.assertIn(field, payload["message"])
        self.assertEqual(self.ids(), [])

    def test_blank_required_strings_are_rejected(self):
        resp = self.client.post("/api/vehicles", json=ecosport(make="  ", description=""))
        self.assertEqual(resp.status_code, 400)
        fields = {d["field"] for d in resp.json()["error"]["details"]}
        self.assertEqual(fields, {"make", "description"})

    def test_unparseable_numeric_is_rejected(self):
        resp = self.client.post("/api/vehicles", json=ecosport(price="a lot"))
        self.assertEqual(resp.status_code, 400)
        self.assertIn("price", resp.json()["message"])
        self.assertEqual(self.ids(), [])

    def test_negative_mileage_is_rejected(self):
        resp = self.client.post("/api/vehicles", json=ecosport(mileage=-1))
        self.assertEqual(resp.status_code, 400)

    def test_non_finite_price_and_mileage_are_rejected(self):
        for field, value in (("price", "inf"), ("mileage", "Infinity"), ("price", "nan")):
            resp = self.client.post("/api/vehicles", json=ecosport(**{field: value}))
            self.assertEqual(resp.status_code, 400, f"{field}={value}")
            self.assertIn(field, resp.json()["message"])

        # Bare JSON literal, as sent by clients that serialize Infinity
        resp = self.client.post(
            "/api/vehicles",
            content=json.dumps(ecosport(price=float("inf"))),
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.ids(), [])

    def test_values_outside_column_bounds_are_rejected(self):
        for overrides in ({"year": 10 ** 20}, {"year": -(2 ** 31) - 1}, {"make": "F" * 101}, {"model": "M" * 101}):
            resp = self.client.post("/api/vehicles", json=ecosport(**overrides))
            self.assertEqual(resp.status_code, 400, overrides)
            self.assertEqual(resp.json()["error"]["code"], "VALIDATION_ERROR")
        self.assertEqual(self.ids(), [])

        self.assertEqual(self.client.post("/api/vehicles", json=ecosport(make="F" * 100)).status_code, 201)

    def test_concurrent_creates_get_ids_one_to_n(self):
        n = 16
        with ThreadPoolExecutor(max_workers=8) as pool:
            responses = list(pool.map(
                lambda i: self.client.post("/api/vehicles", json=ecosport(year=2000 + i)), range(n)
            ))

        self.assertTrue(all(r.status_code == 201 for r in responses))
        self.assertEqual(sorted(r.json()["id"] for r in responses), list(range(1, n + 1)))
        self.assertEqual(self.ids(), list(range(1, n + 1)))

    def test_numeric_strings_are_coerced(self):
        resp = self.client.post("/api/vehicles", json=ecosport(year="2021", price="15000.5", mileage="0"))
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual((body["year"], body["price"], body["mileage"]), (2021, 15000.5, 0))

    def test_featured_defaults_to_false(self):
        body = ecosport()
        del body["featured"]
        self.assertFalse(self.client.post("/api/vehicles", json=body).json()["featured"])

    def test_client_supplied_id_is_ignored(self):
        resp = self.client.post("/api/vehicles", json=ecosport(id=99))
        self.assertEqual(resp.json()["id"], 1)

    def test_non_numeric_delete_id_is_bad_request(self):
        resp = self.client.delete("/api/vehicles/abc")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["code"], "VALIDATION_ERROR")

        self.assertEqual(self.client.delete("/api/vehicles/0").status_code, 400)

    # ─── Images ───────────────────────────────────────────────────────────────
    def test_external_url_is_stored_verbatim(self):
        url = "https://images.example.com/ford/ecosport-front.jpg"
        created = self.client.post("/api/vehicles", json=ecosport(images=[url])).json()
        self.assertEqual(created["images"], [url])
        self.assertEqual(self.uploaded_files(), [])

    def test_inline_image_is_served_at_returned_reference(self):
        created = self.client.post(
            "/api/vehicles",
            json=ecosport(images=[data_url(JPEG_BYTES), "https://x.example/b.jpg", data_url(PNG_BYTES, "image/png")]),
        ).json()

        first, external, third = created["images"]
        self.assertTrue(first.startswith("/uploads/") and first.endswith(".jpg"))
        self.assertEqual(external, "https://x.example/b.jpg")
        self.assertTrue(third.endswith(".png"))

        resp = self.client.get(first)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.content, JPEG_BYTES)
        self.assertEqual(self.client.get(third).content, PNG_BYTES)

    def test_crop_offsets_are_not_persisted(self):
        images = [{"src": "https://x.example/a.jpg", "cropOffsetX": 40, "cropOffsetY": 55}]
        created = self.client.post("/api/vehicles", json=ecosport(images=images)).json()
        self.assertEqual(created["images"], ["https://x.example/a.jpg"])

    def test_more_than_five_images_is_rejected(self):
        images = [data_url(JPEG_BYTES)] * 6
        resp = self.client.post("/api/vehicles", json=ecosport(images=images))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["field"], "images")
        self.assertEqual(self.uploaded_files(), [])
        self.assertEqual(self.ids(), [])

    def test_bad_image_rolls_back_earlier_payloads(self):
        images = [data_url(JPEG_BYTES), "data:image/jpeg;base64,%%%"]
        resp = self.client.post("/api/vehicles", json=ecosport(images=images))

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["code"], "INVALID_IMAGE_FORMAT")
        self.assertEqual(resp.json()["error"]["field"], "images[1]")
        self.assertEqual(self.uploaded_files(), [])
        self.assertEqual(self.ids(), [])

    def test_delete_removes_only_own_payloads(self):
        mine = self.client.post("/api/vehicles", json=ecosport(images=[data_url(JPEG_BYTES)])).json()
        other = self.client.post("/api/vehicles", json=ecosport(images=[data_url(PNG_BYTES, "image/png")])).json()

        self.client.delete(f"/api/vehicles/{mine['id']}")

        self.assertEqual(self.uploaded_files(), [Path(other["images"][0]).name])
        self.assertEqual(self.client.get(other["images"][0]).content, PNG_BYTES)

    def test_delete_keeps_payload_still_referenced_elsewhere(self):
        original = self.client.post("/api/vehicles", json=ecosport(images=[data_url(JPEG_BYTES)])).json()
        ref = original["images"][0]
        self.client.post("/api/vehicles", json=ecosport(images=[ref]))

        self.client.delete(f"/api/vehicles/{original['id']}")
        self.assertEqual(self.client.get(ref).content, JPEG_BYTES)

    def test_delete_tolerates_missing_payload_file(self):
        created = self.client.post("/api/vehicles", json=ecosport(images=[data_url(JPEG_BYTES)])).json()
        (self.upload_dir / Path(created["images"][0]).name).unlink()

        self.assertEqual(self.client.delete(f"/api/vehicles/{created['id']}").status_code, 200)

    def test_delete_succeeds_when_store_read_fails_afterwards(self):
        created = self.client.post("/api/vehicles", json=ecosport(images=[data_url(JPEG_BYTES)])).json()
        store = self.app.state.store

        with mock.patch.object(store, "list_all", side_effect=StoreUnavailableException()):
            resp = self.client.delete(f"/api/vehicles/{created['id']}")

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"success": True})
        self.assertEqual(self.ids(), [])
        # Payload is kept rather than risk removing a shared file
        self.assertEqual(self.uploaded_files(), [Path(created["images"][0]).name])

    # ─── Store failures ───────────────────────────────────────────────────────
    def corrupt_store(self):
        self.app.state.store.path.write_text("{broken", encoding="utf-8")

    def test_store_failure_on_list_is_500(self):
        self.corrupt_store()
        resp = self.client.get("/api/vehicles")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["error"]["code"], "STORE_UNAVAILABLE")

    def test_store_failure_on_list_can_degrade_to_empty(self):
        self.client.close()
        self.client = self.build_client(LIST_DEGRADE_ON_STORE_ERROR=True)
        self.corrupt_store()

        resp = self.client.get("/api/vehicles")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), [])

    def test_store_failure_on_create_cleans_up_payloads(self):
        self.corrupt_store()
        resp = self.client.post("/api/vehicles", json=ecosport(images=[data_url(JPEG_BYTES)]))
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(self.uploaded_files(), [])

    def test_health_reports_store_status(self):
        body = self.client.get("/health").json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["store"], "ok")


class TestVehicleApiOnDatabase(TestVehicleApi):
    """Same HTTP contract against the SQLAlchemy store."""

    def settings_for(self, tmp: Path, **overrides) -> Settings:
        values = {
            "STORE_BACKEND": "database",
            "DATABASE_URL": f"sqlite:///{tmp / 'catalog.db'}",
            "UPLOAD_DIR": str(tmp / "uploads"),
        }
        values.update(overrides)
        return Settings(**values)

    def corrupt_store(self):
        self.app.state.store.engine.dispose()
        Path(self.app.state.store.engine.url.database).unlink()
        # Point at a directory so every connection attempt fails
        Path(self.app.state.store.engine.url.database).mkdir()


class TestInlinePayloadsKeptInRecord(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        tmp = Path(self._tmp.name)
        self.upload_dir = tmp / "uploads"
        self.client = TestClient(create_app(Settings(
            STORE_BACKEND="json",
            JSON_STORE_PATH=str(tmp / "vehicles.json"),
            UPLOAD_DIR=str(self.upload_dir),
            PERSIST_INLINE_IMAGES=False,
        )))

    def tearDown(self):
        self.client.close()
        self._tmp.cleanup()

    def test_payload_is_stored_verbatim(self):
        payload = data_url(JPEG_BYTES)
        created = self.client.post("/api/vehicles", json=ecosport(images=[payload])).json()
        self.assertEqual(created["images"], [payload])
        self.assertEqual(list(self.upload_dir.iterdir()), [])

    def test_malformed_payload_is_still_rejected(self):
        resp = self.client.post("/api/vehicles", json=ecosport(images=["data:image/png;base64"]))
        self.assertEqual(resp.status_code, 400)


if __name__ == '__main__':
    unittest.main()
