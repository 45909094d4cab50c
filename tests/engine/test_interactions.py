# tests/engine/test_interactions.py
# 议员游说回应测试

"""议员游说回应测试。"""
import dataclasses
import random

import pytest

from redbox.catalog.loader import default_catalog
from redbox.engine.interactions import candidate_interactions, get_interaction_response
from redbox.primitives.mp_models import APPROACHES, OUTCOMES, InteractionTemplate, MPTarget


@pytest.fixture
def catalog():
    return default_catalog()


class TestCandidates:
    def test_most_specific_template_wins(self, catalog):
        target = MPTarget(name="Jo Bloggs", rebelliousness=8, ambition=2)
        candidates = candidate_interactions(catalog, target, "threaten", "backfire")
        assert [t.id for t in candidates] == ["backfire_principled_vet"]

    def test_equal_specificity_kept_together(self, catalog):
        target = MPTarget(name="Jo Bloggs", party="snp", is_minister=True, rebelliousness=5)
        ids = {t.id for t in candidate_interactions(catalog, target, "persuade", "success")}
        assert ids == {"persuade_success_minister", "persuade_success_snp"}

    def test_only_maximum_specificity_returned(self, catalog):
        rng = random.Random(21)
        parties = ["", "snp", "green", "labour"]
        factions = ["", "red_wall", "regional", "left", "technocrat", "hard_right"]
        for _ in range(200):
            target = MPTarget(
                name="MP",
                party=rng.choice(parties),
                faction=rng.choice(factions),
                is_minister=rng.random() < 0.3,
                rebelliousness=rng.uniform(0, 10),
                ambition=rng.uniform(0, 10),
            )
            approach, outcome = rng.choice(APPROACHES), rng.choice(OUTCOMES)
            matched = [
                t for t in catalog.interactions
                if approach in t.approaches and outcome in t.outcomes and t.matches(target)
            ]
            candidates = candidate_interactions(catalog, target, approach, outcome)
            if not matched:
                assert candidates == []
                continue
            top = max(t.specificity for t in matched)
            assert candidates
            assert all(t.specificity == top for t in candidates)


class TestInteractionResponse:
    def test_renders_name(self, catalog):
        target = MPTarget(name="Jo Bloggs", rebelliousness=8, ambition=2)
        text = get_interaction_response(target, "threaten", "backfire", catalog, random.Random(0))
        assert text == (
            'Jo Bloggs rises to their full height. "Threatening a Member of Parliament? '
            'I shall be raising this with the Speaker immediately."'
        )

    def test_fallback_when_nothing_matches(self, catalog):
        target = MPTarget(name="Jo Bloggs")
        text = get_interaction_response(target, "promise", "backfire", catalog, random.Random(0))
        assert text == "Jo Bloggs has heard you out. The conversation is over."

    def test_constituency_substituted(self, catalog):
        custom = dataclasses.replace(catalog, interactions=(
            InteractionTemplate(
                id="local",
                approaches=("promise",),
                outcomes=("success",),
                text="{name} will tell {constituency} about this.",
            ),
        ))
        target = MPTarget(name="Jo Bloggs", constituency="Hartlepool")
        text = get_interaction_response(target, "promise", "success", custom, random.Random(0))
        assert text == "Jo Bloggs will tell Hartlepool about this."

    def test_seeded_choice_is_reproducible(self, catalog):
        target = MPTarget(name="Jo Bloggs", ambition=9)
        first = [
            get_interaction_response(target, "promise", "success", catalog, random.Random(s))
            for s in range(10)
        ]
        second = [
            get_interaction_response(target, "promise", "success", catalog, random.Random(s))
            for s in range(10)
        ]
        assert first == second

    def test_unknown_approach_rejected(self, catalog):
        with pytest.raises(ValueError):
            get_interaction_response(MPTarget(name="Jo"), "bribe", "success", catalog)
        with pytest.raises(ValueError):
            get_interaction_response(MPTarget(name="Jo"), "promise", "maybe", catalog)
