"""Tests for the HTTP API and the print pages."""
import base64

from cafe_pos.printer.transports import TransportKind

from conftest import TOTAL_BYTES


class TestRender:

    def test_render_directives(self, client, total_directives):
        response = client.post("/api/render", json={"job": total_directives})

        assert response.status_code == 200
        data = response.get_json()
        assert base64.b64decode(data["data"]) == TOTAL_BYTES
        assert data["size"] == len(TOTAL_BYTES)
        assert data["preview"] == "TOTAL: 45.00 MAD"
        assert "variables" not in data

    def test_render_template(self, client):
        response = client.post("/api/render", json={
            "template": "[bold]TOTAL: {{total}}[/bold]",
            "variables": {"total": "45.00 MAD"},
        })
        data = response.get_json()
        assert data["preview"] == "TOTAL: 45.00 MAD"
        assert data["variables"] == ["total"]

    def test_render_template_lists_loop_variables(self, client):
        response = client.post("/api/render", json={
            "template": "{{shop}}\n{{#each items}}{{name}}\n{{/each}}",
        })
        data = response.get_json()
        assert data["variables"] == ["items", "name", "shop"]

    def test_barcode_height_out_of_range(self, client):
        response = client.post("/api/render", json={
            "job": [{"type": "barcode", "payload": "1", "height": 300}],
        })
        assert response.status_code == 400

    def test_barcode_too_long(self, client):
        response = client.post("/api/render", json={
            "job": [{"type": "barcode", "payload": "1" * 256}],
        })

        assert response.status_code == 400
        assert response.get_json()["error"] == "Code-barres trop long pour l'imprimante."

    def test_missing_job(self, client):
        response = client.post("/api/render", json={})
        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_unknown_directive(self, client):
        response = client.post("/api/render", json={"job": [{"type": "image"}]})
        assert response.status_code == 400


class TestPrint:

    def test_falls_back_to_preview(self, client, total_directives):
        response = client.post("/api/print", json={"job": total_directives, "label": "customer"})

        assert response.status_code == 200
        outcome = response.get_json()["outcome"]
        assert outcome["via"] == "manual_fallback"
        assert [a["transport"] for a in outcome["attempts"]] == [
            "direct", "host_service", "manual_fallback",
        ]

        page = client.get(f"/print/fallback/{outcome['reference']}")
        assert page.status_code == 200
        assert "TOTAL: 45.00 MAD" in page.get_data(as_text=True)
        assert "window.print()" in page.get_data(as_text=True)

    def test_direct_after_grant(self, client, channel_factory, total_directives):
        response = client.post("/api/device", json={"type": "serial", "port": "/dev/ttyUSB0"})
        assert response.status_code == 201

        response = client.post("/api/print", json={"job": total_directives})

        assert response.get_json()["outcome"]["via"] == "direct"
        assert channel_factory.writes == [TOTAL_BYTES]

    def test_pair(self, client, channel_factory, total_directives):
        client.post("/api/device", json={"type": "serial", "port": "/dev/ttyUSB0"})

        response = client.post("/api/print", json={
            "customer": total_directives,
            "staff": [{"type": "text", "text": "Table 4"}, {"type": "cut"}],
        })

        data = response.get_json()
        assert data["success"] is True
        assert [o["label"] for o in data["outcomes"]] == ["customer", "staff"]
        assert channel_factory.writes[0] == TOTAL_BYTES
        assert len(channel_factory.writes) == 2
        assert len(data["history_ids"]) == 2

    def test_presentation_failure(self, app, client, total_directives):
        presenter = app.extensions["delivery_coordinator"].transport(TransportKind.MANUAL_FALLBACK).presenter
        presenter.capacity = 0

        response = client.post("/api/print", json={"job": total_directives})

        assert response.status_code == 503
        data = response.get_json()
        assert data["error"] == "Problème de connexion imprimante — vérifiez le câble."

        record = client.get(f"/api/history/{data['history_id']}").get_json()
        assert record["status"] == "failed"
        assert len(record["attempts"]) == 3


class TestDevice:

    def test_grant_status_revoke(self, client):
        assert client.get("/api/device").get_json()["granted"] is None

        client.post("/api/device", json={"type": "network", "ip": "192.168.1.50"})
        assert client.get("/api/device").get_json()["granted"]["ip"] == "192.168.1.50"

        assert client.delete("/api/device").status_code == 200
        assert client.get("/api/device").get_json()["granted"] is None

    def test_grant_without_type(self, client):
        response = client.post("/api/device", json={"port": "COM3"})
        assert response.status_code == 400


class TestHistory:

    def test_history_records_deliveries(self, client, total_directives):
        client.post("/api/print", json={"job": total_directives, "label": "customer"})

        history = client.get("/api/history").get_json()["history"]

        assert len(history) == 1
        assert history[0]["label"] == "customer"
        assert history[0]["via"] == "manual_fallback"
        assert history[0]["status"] == "success"
        assert history[0]["rendered_preview"] == "TOTAL: 45.00 MAD"

    def test_status_filter(self, client, total_directives):
        client.post("/api/print", json={"job": total_directives})
        assert client.get("/api/history?status=failed").get_json()["history"] == []

    def test_history_pages(self, client, total_directives):
        client.post("/api/print", json={"job": total_directives, "label": "customer"})
        history_id = client.get("/api/history").get_json()["history"][0]["id"]

        assert client.get("/print/history").status_code == 200
        detail = client.get(f"/print/history/{history_id}")
        assert detail.status_code == 200
        assert "manual_fallback" in detail.get_data(as_text=True)

    def test_index_redirects_to_history(self, client):
        response = client.get("/")
        assert response.status_code == 302
        assert response.headers["Location"].endswith("/print/history")


def test_unknown_fallback_ticket(client):
    assert client.get("/print/fallback/999").status_code == 404
