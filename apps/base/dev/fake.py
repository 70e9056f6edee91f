import random

from faker import Faker

from main import db
from models.proposal import Proposal, ProposalStatus
from models.review import Review, ReviewRating
from models.tag import Tag
from models.user import User, UserRole

DEFAULT_PASSWORD = "password"


def random_state(states):
    cumulative = []
    p = 0
    for state, prob in states.items():
        cumulative.append((state, p + prob))
        p += prob
    assert round(p, 3) == 1

    r = random.random()
    for state, prob in cumulative:
        if r <= prob:
            return state
    assert False


def fake_proposal(fake, speakers, tags):
    proposal = Proposal(
        random.choice(speakers),
        fake.sentence(nb_words=6, variable_nb_words=True).rstrip("."),
        fake.text(max_nb_chars=500),
    )
    proposal.status = random_state(
        {
            ProposalStatus.PENDING: 0.5,
            ProposalStatus.APPROVED: 0.3,
            ProposalStatus.REJECTED: 0.2,
        }
    )
    proposal.tags = random.sample(tags, random.randint(1, 3))
    return proposal


class FakeDataGenerator:
    def __init__(self):
        self.fake = Faker("en_GB")

    def make_user(self, email, name, role):
        user = User.get_by_email(email)
        if not user:
            user = User(email, name, role)
            user.set_password(DEFAULT_PASSWORD)
            db.session.add(user)
        return user

    def run(self):
        self.make_user("admin@example.com", "Admin User", UserRole.ADMIN)

        reviewers = [
            self.make_user(f"reviewer{i}@example.com", f"Reviewer {i}", UserRole.REVIEWER) for i in range(3)
        ]
        speakers = [self.make_user(f"speaker{i}@example.com", self.fake.name(), UserRole.SPEAKER) for i in range(5)]

        tags = []
        while len(tags) < 10:
            tag = Tag.get_or_create(self.fake.unique.word())
            if tag not in tags:
                tags.append(tag)

        proposals = [fake_proposal(self.fake, speakers, tags) for _ in range(20)]
        db.session.add_all(proposals)
        db.session.flush()

        for proposal in proposals[:15]:
            # At most one review per reviewer per proposal
            for reviewer in random.sample(reviewers, random.randint(1, len(reviewers))):
                comment = self.fake.paragraph() if random.random() < 0.8 else None
                db.session.add(Review(proposal, reviewer, random.choice(list(ReviewRating)), comment))

        db.session.commit()
        return len(proposals)
