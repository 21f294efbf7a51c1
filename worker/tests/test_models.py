from clinic_discovery.models import LocationBias, RawPlace


def test_from_api_parses_payload(make_place):
    place = RawPlace.from_api(
        make_place(photos=[{"name": "places/ChIJ123/photos/abc"}, {"widthPx": 10}], types=["doctor", "health"])
    )

    assert place.id == "ChIJ123"
    assert place.name == "Smith Plastic Surgery"
    assert place.rating == 4.8
    assert place.rating_count == 120
    assert place.phone == "(305) 555-0100"
    assert place.photo_names == ["places/ChIJ123/photos/abc"]
    assert place.types == ["doctor", "health"]
    assert place.reviews[0].author == "Jane Marie Doe"
    assert place.reviews[0].text == "Great experience."
    assert place.address_components[2].types == ("locality", "political")


def test_from_api_requires_id():
    assert RawPlace.from_api({"displayName": {"text": "No Id"}}) is None
    assert RawPlace.from_api({"id": "  "}) is None


def test_from_api_tolerates_bad_numbers():
    place = RawPlace.from_api({"id": "x", "rating": "n/a", "userRatingCount": None, "displayName": {}})

    assert place.name == "Unknown"
    assert place.rating is None
    assert place.rating_count is None
    assert place.reviews == []


def test_merged_with_prefers_populated_detail_fields(make_place):
    search = RawPlace.from_api(make_place(reviews=[]))
    details = RawPlace.from_api(
        {
            "id": "ChIJ123",
            "reviews": [{"authorAttribution": {"displayName": "Ann Lee"}, "rating": 4, "text": {"text": "Good"}}],
            "websiteUri": "https://new.example.com",
        }
    )

    merged = search.merged_with(details)

    assert merged.name == "Smith Plastic Surgery"
    assert merged.website == "https://new.example.com"
    assert merged.phone == "(305) 555-0100"
    assert merged.rating == 4.8
    assert [r.author for r in merged.reviews] == ["Ann Lee"]
    assert merged.address_components == search.address_components


def test_location_bias_payload():
    assert LocationBias(25.0, -80.0, radius=1000).to_api() == {
        "circle": {"center": {"latitude": 25.0, "longitude": -80.0}, "radius": 1000}
    }
