"""Tests for the FastAPI endpoints."""

import pytest
from fastapi.testclient import TestClient

from sitegen.main import app

from conftest import ring_from_metres, square_coords

client = TestClient(app)


def points(side, center=(0.0, 0.0)):
    return [{"lat": p.lat, "lng": p.lng} for p in ring_from_metres(square_coords(side, center))]


SITE = points(200)


@pytest.fixture(scope="module")
def generated():
    r = client.post("/api/layout/generate", json={"boundary": SITE, "seed": "api"})
    assert r.status_code == 200
    return r.json()


class TestHealthEndpoint:
    def test_health(self):
        r = client.get("/api/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestPresetsEndpoint:
    def test_lists_every_density(self):
        data = client.get("/api/layout/presets").json()
        assert data["default"] == "medium"
        assert set(data["presets"]) == {"low", "medium", "high", "very-high"}
        assert data["presets"]["high"]["floors"] == [2, 4]


class TestGenerateEndpoint:
    def test_response_shape(self, generated):
        assert set(generated) == {"roads", "parcels", "greenSpaces", "buildings", "stats", "seed"}
        for key in ("roads", "parcels", "greenSpaces", "buildings"):
            assert generated[key]["type"] == "FeatureCollection"
        assert generated["roads"]["features"]
        assert generated["stats"]["buildingCount"] == len(generated["buildings"]["features"])

    def test_same_input_same_layout(self, generated):
        again = client.post("/api/layout/generate", json={"boundary": SITE, "seed": "api"}).json()
        assert again == generated

    def test_numeric_seed(self):
        a = client.post("/api/layout/generate", json={"boundary": SITE, "seed": 7}).json()
        b = client.post("/api/layout/generate", json={"boundary": SITE, "seed": "7"}).json()
        assert a["seed"] == b["seed"]

    def test_no_green_space(self):
        r = client.post("/api/layout/generate", json={"boundary": SITE, "greenSpaceType": "none"})
        assert r.status_code == 200
        assert r.json()["greenSpaces"]["features"] == []

    def test_geojson_feature_boundary(self, generated):
        feature = {
            "type": "Feature",
            "properties": {},
            "geometry": {"type": "Polygon", "coordinates": [[[p["lng"], p["lat"]] for p in SITE]]},
        }
        r = client.post("/api/layout/generate", json={"boundary": feature, "seed": "api"})
        assert r.status_code == 200
        assert r.json() == generated

    def test_zones(self):
        zone = {"ring": points(600), "kind": "commercial"}
        r = client.post("/api/layout/generate", json={
            "boundary": SITE, "seed": "api", "buildingType": "house_detached", "zones": [zone],
        })
        assert r.status_code == 200
        data = r.json()
        assert data["buildings"]["features"] == []
        assert data["stats"]["rejectedByZoning"] > 0

    @pytest.mark.parametrize("body", [
        {"boundary": SITE[:2]},
        {"boundary": [{"lat": 95, "lng": 0}] + SITE[1:]},
        {"boundary": SITE, "density": "extreme"},
        {"boundary": SITE, "minBuildingSize": 500, "maxBuildingSize": 100},
        {"boundary": SITE, "buildingShape": "circle"},
        {"boundary": {"type": "Point", "coordinates": [0, 51.5]}},
        {"boundary": {"type": "MultiPolygon", "coordinates": 5}},
        {"boundary": {"type": "FeatureCollection", "features": ["x"]}},
        {"boundary": {"type": "Feature", "geometry": "Polygon"}},
        {"boundary": SITE, "zones": [{"ring": SITE[:2], "kind": "residential"}]},
    ])
    def test_invalid_input(self, body):
        assert client.post("/api/layout/generate", json=body).status_code == 422

    def test_error_message(self):
        r = client.post("/api/layout/generate", json={"boundary": SITE[:2]})
        assert "at least 3" in r.json()["detail"][0]["message"]


class TestZoningEndpoints:
    def test_compatible_placement(self):
        r = client.post("/api/zoning/validate-placement", json={
            "footprint": points(10, center=(-60, 0)),
            "buildingType": "residential",
            "zones": [{"ring": points(100, center=(-60, 0)), "kind": "residential"}],
        })
        assert r.status_code == 200
        assert r.json() == {"isValid": True, "reasons": [], "compatibleZone": "residential"}

    def test_incompatible_placement(self):
        r = client.post("/api/zoning/validate-placement", json={
            "footprint": points(10),
            "buildingType": "office",
            "zones": [{"ring": points(100), "kind": "residential"}],
        })
        data = r.json()
        assert data["isValid"] is False
        assert data["compatibleZone"] is None
        assert "not compatible with residential zone" in data["reasons"][0]

    def test_unzoned_placement(self):
        r = client.post("/api/zoning/validate-placement", json={
            "footprint": points(10), "buildingType": "office",
        })
        assert r.json()["reasons"] == ["Building must be placed within a zoned area."]

    def test_validate_zone(self):
        r = client.post("/api/zoning/validate-zone", json={
            "outer": points(50), "kind": "residential", "boundary": SITE,
        })
        assert r.status_code == 200
        data = r.json()
        assert data["isValid"] is True
        assert data["zoneKind"] == "residential"
        assert data["stats"]["areaSqM"] == pytest.approx(2500, rel=1e-3)

    def test_validate_zone_too_small(self):
        r = client.post("/api/zoning/validate-zone", json={
            "outer": points(20), "kind": "solar", "boundary": SITE,
        })
        data = r.json()
        assert data["isValid"] is False
        assert data["suggestions"] == ["Try drawing a larger area for solar zones"]

    def test_validate_zone_bad_ring(self):
        r = client.post("/api/zoning/validate-zone", json={
            "outer": SITE[:2], "kind": "residential", "boundary": SITE,
        })
        assert r.status_code == 422

    def test_suggest(self):
        data = client.get("/api/zoning/suggest", params={"area_sq_m": 150}).json()
        assert data["suggestions"] == ["residential", "amenity"]
        assert data["configs"]["residential"]["minAreaSqM"] == 100

    def test_suggest_rejects_negative_area(self):
        assert client.get("/api/zoning/suggest", params={"area_sq_m": -1}).status_code == 422


class TestExportEndpoint:
    def test_dxf_download(self):
        r = client.post("/api/export/dxf", json={"boundary": SITE, "seed": "api"})
        assert r.status_code == 200
        assert r.headers["content-type"] == "application/dxf"
        assert "site-layout.dxf" in r.headers["content-disposition"]
        assert "SECTION" in r.text[:200]
        assert "C-ROAD-CNTR" in r.text

    def test_invalid_boundary(self):
        r = client.post("/api/export/dxf", json={"boundary": SITE[:2]})
        assert r.status_code == 422
