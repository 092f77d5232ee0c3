from dataclasses import dataclass, field
import random
import time


FIRST_NAMES = (
    "John", "Jane", "Michael", "Sarah", "David", "Emily", "James", "Jessica", "Robert", "Ashley",
    "William", "Amanda", "Richard", "Jennifer", "Charles", "Michelle", "Thomas", "Kimberly", "Christopher", "Donna",
    "Daniel", "Lisa", "Matthew", "Nancy", "Anthony", "Karen", "Mark", "Betty", "Donald", "Helen",
    "Steven", "Sandra", "Paul", "Donna", "Andrew", "Carol", "Joshua", "Ruth", "Kenneth", "Sharon",
    "Kevin", "Michelle", "Brian", "Laura", "George", "Sarah", "Edward", "Kimberly", "Ronald", "Deborah",
    "Timothy", "Dorothy", "Jason", "Lisa", "Jeffrey", "Nancy", "Ryan", "Karen", "Jacob", "Betty",
    "Gary", "Helen", "Nicholas", "Sandra", "Eric", "Donna", "Jonathan", "Carol", "Stephen", "Ruth",
    "Larry", "Sharon", "Justin", "Michelle", "Scott", "Laura", "Brandon", "Sarah", "Benjamin", "Kimberly",
    "Samuel", "Deborah", "Gregory", "Dorothy", "Alexander", "Lisa", "Patrick", "Nancy", "Jack", "Karen",
)

LAST_NAMES = (
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis", "Rodriguez", "Martinez",
    "Hernandez", "Lopez", "Gonzalez", "Wilson", "Anderson", "Thomas", "Taylor", "Moore", "Jackson", "Martin",
    "Lee", "Perez", "Thompson", "White", "Harris", "Sanchez", "Clark", "Ramirez", "Lewis", "Robinson",
    "Walker", "Young", "Allen", "King", "Wright", "Scott", "Torres", "Nguyen", "Hill", "Flores",
    "Green", "Adams", "Nelson", "Baker", "Hall", "Rivera", "Campbell", "Mitchell", "Carter", "Roberts",
    "Gomez", "Phillips", "Evans", "Turner", "Diaz", "Parker", "Cruz", "Edwards", "Collins", "Reyes",
    "Stewart", "Morris", "Morales", "Murphy", "Cook", "Rogers", "Gutierrez", "Ortiz", "Morgan", "Cooper",
    "Peterson", "Bailey", "Reed", "Kelly", "Howard", "Ramos", "Kim", "Cox", "Ward", "Richardson",
    "Watson", "Brooks", "Chavez", "Wood", "James", "Bennett", "Gray", "Mendoza", "Ruiz", "Hughes",
)


@dataclass(frozen=True)
class AccountRecord:
    email: str
    password: str
    user_metadata: dict[str, object] = field(default_factory=dict)


def new_run_token() -> str:
    return str(time.time_ns() // 1_000_000)


def generate_account_batch(
    count: int,
    email_domain: str,
    default_password: str,
    *,
    start_index: int = 0,
    run_token: str | None = None,
    rng: random.Random | None = None,
) -> list[AccountRecord]:
    """Build ``count`` synthetic accounts.

    The local part of each email is ``first.last.<run_token>-<index>`` where
    ``index`` counts from ``start_index``, so batches of one run that are given
    disjoint offsets never collide.
    """
    chooser = rng or random
    token = run_token or new_run_token()

    records: list[AccountRecord] = []
    for offset in range(count):
        first_name = chooser.choice(FIRST_NAMES)
        last_name = chooser.choice(LAST_NAMES)
        email = f"{first_name.lower()}.{last_name.lower()}.{token}-{start_index + offset}@{email_domain}"
        records.append(
            AccountRecord(
                email=email,
                password=default_password,
                user_metadata={
                    "first_name": first_name,
                    "last_name": last_name,
                    "email_verified": True,
                },
            )
        )
    return records
