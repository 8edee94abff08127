"""Integration tests for tick-heist - authored content through a full session."""
from __future__ import annotations

import json

from tick_heist import Engine, Failure, load_content

CONTENT = {
    "branches": [{"id": "street", "name": "Street", "revealedByDefault": True}],
    "resources": [
        {"id": "cash", "name": "Cash", "revealedByDefault": True},
        {"id": "heat", "name": "Heat"},
        {"id": "cred", "name": "Cred", "initial": 10},
    ],
    "roles": [
        {
            "id": "thief",
            "name": "Thief",
            "revealedByDefault": True,
            "xpToStars": [{"stars": 0, "minXp": 0}, {"stars": 1, "minXp": 10}],
        }
    ],
    "crew": [{"id": "s_001", "name": "Ace", "roleId": "thief"}],
    "activities": [
        {
            "id": "pickpocket",
            "branchId": "street",
            "name": "Pickpocketing",
            "revealedByDefault": True,
            "options": [
                {
                    "id": "crowd",
                    "name": "Work the Crowd",
                    "durationMs": 5000,
                    "repeatable": True,
                    "requirements": {"staff": [{"roleId": "thief", "count": 1}]},
                    "resolution": {
                        "type": "ranged_outputs",
                        "outputs": {"resources": {"cash": {"min": 5, "max": 15}}},
                        "heatDelta": 1,
                        "effects": [{"type": "unlockActivity", "activityId": "mugging"}],
                    },
                    "xpRewards": {"onComplete": 5},
                }
            ],
        },
        {
            "id": "mugging",
            "branchId": "street",
            "name": "Mugging",
            "visibleIf": [{"type": "activityRevealed", "activityId": "mugging"}],
            "options": [
                {
                    "id": "alley",
                    "name": "Dark Alley",
                    "durationMs": 10000,
                    "unlockIf": [{"type": "staffStarsGte", "roleId": "thief", "value": 1}],
                    "requirements": {"staff": [{"roleId": "thief", "count": 1}]},
                    "inputs": {"resources": {"cash": 5}},
                    "resolution": {
                        "type": "weighted_outcomes",
                        "outcomes": [
                            {
                                "id": "success",
                                "weight": 80,
                                "outputs": {"resources": {"cash": 50}},
                                "credDelta": 2,
                            },
                            {
                                "id": "caught",
                                "weight": 20,
                                "heatDelta": 5,
                                "jail": {"durationMs": 30000},
                            },
                        ],
                    },
                    "modifiers": [
                        {
                            "type": "staffStars",
                            "roleId": "thief",
                            "applyPerStar": {"caughtWeightDelta": -20},
                        }
                    ],
                }
            ],
        },
    ],
}


class TestSession:
    def test_progression_unlocks_mugging(self) -> None:
        engine = Engine(load_content(CONTENT), seed=42)
        assert not engine.is_visible("mugging")
        assert engine.start("mugging", "alley").reason is Failure.HIDDEN

        assert engine.start("pickpocket", "crowd", runs_left=1).ok
        engine.advance(5000)
        assert engine.is_visible("mugging")
        assert not engine.is_unlocked("mugging", "alley")
        assert engine.start("mugging", "alley").reason is Failure.LOCKED
        assert "Discovered: mugging" in engine.state.log.texts()

        engine.advance(10_000)
        assert engine.runs() == []
        assert engine.stars("s_001") == 1
        assert engine.completions("pickpocket") == 2
        cash = engine.resource("cash")
        assert 10 <= cash <= 30
        assert engine.state.ledger.heat == 2

        result = engine.start("mugging", "alley")
        assert result.ok
        assert result.run is not None
        assert result.run.snapshot.planned_outcome_id == "success"
        assert engine.resource("cash") == cash - 5

        engine.advance(20_000)
        assert engine.resource("cash") == cash + 45
        assert engine.state.ledger.reputation == 12
        assert engine.log()[-1].text == "Completed: Mugging → Dark Alley (success)"

    def test_offline_catch_up_after_reload(self) -> None:
        engine = Engine(load_content(CONTENT), seed=42)
        engine.start("pickpocket", "crowd", runs_left=-1)
        engine.advance(2000)
        saved = json.dumps(engine.snapshot())

        reloaded = Engine(load_content(CONTENT), seed=0)
        completed = reloaded.restore(json.loads(saved), now=60_000)
        assert len(completed) == 12
        assert reloaded.completions("pickpocket", "crowd") == 12
        assert len(reloaded.runs()) == 1
        assert reloaded.runs()[0].started_at == 60_000

    def test_log_order(self) -> None:
        engine = Engine(load_content(CONTENT), seed=1)
        engine.start("pickpocket", "crowd")
        engine.advance(5000)
        assert engine.state.log.texts() == [
            "Started: Pickpocketing → Work the Crowd",
            "Discovered: mugging",
            "Completed: Pickpocketing → Work the Crowd",
        ]
