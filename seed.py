import os
import uuid
from datetime import datetime, timezone

from config import Config
from portal.firebase_init import get_auth, get_db, init_firebase
from portal.models import (
    AccountStatus,
    ContentPage,
    Gender,
    HonorRollEntry,
    HonorRollType,
    Member,
    Organizer,
    Semester,
    TimelineCategory,
    TimelineEvent,
    UserProfile,
    UserRole,
)
from portal.remote import build_tables
from portal.settings import CHAPTER_NAME_PAGE


def seed_database():
    init_firebase(vars(Config))
    auth = get_auth()
    tables = build_tables(get_db())
    now = datetime.now(timezone.utc)

    password = os.environ.get('SEED_PASSWORD', 'password123')

    def insert(record):
        if record.id is None:
            record.id = uuid.uuid4().hex
        for field_name in record.timestamp_fields():
            setattr(record, field_name, now)
        tables[record.TABLE].insert(record.to_row())

    print("Creating users...")

    def create_firebase_user(email, display_name, role):
        try:
            fb_user = auth.create_user(email=email, password=password, display_name=display_name)
        except auth.EmailAlreadyExistsError:
            fb_user = auth.get_user_by_email(email)
        uid = fb_user.uid
        tables[UserProfile.TABLE].insert(UserProfile(
            id=uid, name=display_name, email=email, role=role, status=AccountStatus.ACTIVE,
        ).to_row())
        return uid

    create_firebase_user('admin@alphabeta.org', 'Gate Keeper', UserRole.ADMIN)
    create_firebase_user('guest@alphabeta.org', 'Gate Guest', UserRole.GUEST)

    print("Creating members...")
    insert(Member(last_name='Doe', first_name='John', middle_name='A.', gender=Gender.MALE,
                  batch_year='2020', batch_name='Alpha Genesis', id_number='2020-00123',
                  semester=Semester.A, chapter='Alpha Beta', school='University of Science'))
    insert(Member(last_name='Smith', first_name='Jane', middle_name='B.', gender=Gender.FEMALE,
                  batch_year='2021', batch_name='Beta Rising', id_number='2021-00456',
                  semester=Semester.B, chapter='Alpha Beta', school='State College'))
    insert(Member(last_name='Reyes', first_name='Mark', middle_name='C.', gender=Gender.MALE,
                  batch_year='2019', batch_name='Gamma Ray', id_number='2019-00789',
                  semester=Semester.A, chapter='Alpha Beta', school='University of Science'))

    print("Creating organizers...")
    insert(Organizer(last_name='Santos', first_name='Pedro', middle_name='D.', batch_year='1963',
                     id_number='1963-001', chapter='Alpha Beta', school='University of Science'))

    print("Creating honor roll...")
    insert(HonorRollEntry(last_name='Garcia', first_name='Luis', middle_name='E.', year='2023',
                          term='1st Semester', type=HonorRollType.GC))
    insert(HonorRollEntry(last_name='Lopez', first_name='Maria', middle_name='F.', year='2023',
                          term='1st Semester', type=HonorRollType.GLC))

    print("Creating timeline...")
    insert(TimelineEvent(year='1963', date='March 5, 1963', title='Chapter founded',
                         description='The chapter received its charter.',
                         category=TimelineCategory.FRATERNITY))
    insert(TimelineEvent(year='1985', date='August 12, 1985', title='Sorority chapter chartered',
                         description='The sorority chapter joined the organization.',
                         category=TimelineCategory.SORORITY))

    print("Creating content pages...")
    insert(ContentPage(id='about_intro', title='About Us',
                       content='Leadership, friendship and service.'))
    insert(ContentPage(id=CHAPTER_NAME_PAGE, title='Chapter Name', content='ALPHA BETA'))

    print("Seed complete.")


if __name__ == '__main__':
    seed_database()
