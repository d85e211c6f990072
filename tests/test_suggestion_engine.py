from suggestion_engine import CandidatePools, match, is_valid


def test_most_recent_session_entry_wins():
    pools = CandidatePools(
        session=["git status", "git push origin"],
        historical=["git status"],
        static=["git status"],
    )
    assert match("gi", pools) == "git push origin"


def test_session_beats_historical_and_static():
    pools = CandidatePools(session=["ls -l /tmp"], historical=["ls -la"], static=["ls -la"])
    assert match("ls", pools) == "ls -l /tmp"


def test_falls_back_through_pools_in_order():
    pools = CandidatePools(session=["npm test"], historical=["docker compose up", "docker ps -a"], static=["docker ps"])
    assert match("dock", pools) == "docker ps -a"
    assert match("cd", pools) == ""
    pools.static.append("cd ..")
    assert match("cd", pools) == "cd .."


def test_match_is_case_insensitive():
    pools = CandidatePools(session=["Make build"])
    assert match("mAK", pools) == "Make build"


def test_blank_prefix_gives_nothing():
    pools = CandidatePools(session=["ls"], historical=["pwd"], static=["exit"])
    assert match("", pools) == ""
    assert match("   ", pools) == ""


def test_accepts_plain_list_of_pools():
    assert match("ex", [[], ["exa"], ["exit"]]) == "exa"


def test_record_appends_to_session():
    pools = CandidatePools()
    pools.record("make")
    pools.record("make test")
    assert pools.session == ["make", "make test"]
    assert match("ma", pools) == "make test"


def test_is_valid():
    assert is_valid("git status", "GIT s")
    assert not is_valid("git status", "gx")
    assert not is_valid("", "")
