from premium_push.cli import parse_args


def test_parse_args_defaults():
    args = parse_args(["premium@example.com"])

    assert args.email == "premium@example.com"
    assert args.dry_run is False
    assert args.log_level is None


def test_parse_args_dry_run():
    args = parse_args(["premium@example.com", "--dry-run", "--log-level", "debug"])

    assert args.dry_run is True
    assert args.log_level == "debug"
