import random
import re

from authseed.records import FIRST_NAMES, LAST_NAMES, generate_account_batch


EMAIL_PATTERN = re.compile(r"^[a-z]+\.[a-z]+\.[0-9]+-[0-9]+@example\.com$")


def test_batch_has_requested_size_and_unique_valid_emails() -> None:
    records = generate_account_batch(500, "example.com", "password123")

    assert len(records) == 500
    emails = [record.email for record in records]
    assert len(set(emails)) == 500
    assert all(EMAIL_PATTERN.match(email) for email in emails)


def test_metadata_is_verified_and_names_come_from_tables() -> None:
    records = generate_account_batch(50, "example.com", "s3cret", rng=random.Random(7))

    for record in records:
        assert record.password == "s3cret"
        assert record.user_metadata["email_verified"] is True
        assert record.user_metadata["first_name"] in FIRST_NAMES
        assert record.user_metadata["last_name"] in LAST_NAMES
        first = str(record.user_metadata["first_name"]).lower()
        last = str(record.user_metadata["last_name"]).lower()
        assert record.email.startswith(f"{first}.{last}.")


def test_offsets_keep_batches_of_one_run_disjoint() -> None:
    first = generate_account_batch(3, "example.com", "pw", start_index=0, run_token="1700000000000")
    second = generate_account_batch(3, "example.com", "pw", start_index=3, run_token="1700000000000")

    suffixes = [record.email.split("@")[0].rsplit(".", 1)[1] for record in first + second]
    assert suffixes == [f"1700000000000-{index}" for index in range(6)]


def test_zero_count_yields_empty_batch() -> None:
    assert generate_account_batch(0, "example.com", "pw") == []
