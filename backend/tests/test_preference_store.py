"""
Tests du stockage des préférences de notification (system_settings).
"""

import uuid

from lecturetrack.enums import Channel, NotificationCategory, NotificationPriority
from lecturetrack.models.notification import SystemSetting
from lecturetrack.schemas.preferences import (
    DEFAULT_PREFERENCES,
    ChannelPreference,
    NotificationPreferencesUpdate,
    QuietHours,
)
from lecturetrack.services.preference_store import PREFERENCES_CATEGORY, PreferenceStore


def stored_rows(db):
    return db.query(SystemSetting).filter(SystemSetting.category == PREFERENCES_CATEGORY).all()


def test_valeurs_par_defaut_creees_au_premier_acces(db_session):
    user_id = uuid.uuid4()

    prefs = PreferenceStore(db_session).get(user_id)

    assert prefs == DEFAULT_PREFERENCES
    [row] = stored_rows(db_session)
    assert row.key == str(user_id)


def test_deuxieme_lecture_sans_nouvelle_ligne(db_session):
    user_id = uuid.uuid4()
    store = PreferenceStore(db_session)

    store.get(user_id)
    store.get(user_id)

    assert len(stored_rows(db_session)) == 1


def test_defauts_injectes(db_session):
    custom = DEFAULT_PREFERENCES.model_copy(deep=True)
    custom.quiet_hours = QuietHours(enabled=True, start="21:00", end="06:00")

    prefs = PreferenceStore(db_session, defaults=custom).get(uuid.uuid4())

    assert prefs.quiet_hours.start == "21:00"


def test_defauts_non_modifies_par_un_utilisateur(db_session):
    prefs = PreferenceStore(db_session).get(uuid.uuid4())
    prefs.categories[NotificationCategory.SYSTEM].clear()

    assert DEFAULT_PREFERENCES.categories[NotificationCategory.SYSTEM]


def test_mise_a_jour_partielle(db_session):
    user_id = uuid.uuid4()
    store = PreferenceStore(db_session)

    updated = store.update(user_id, NotificationPreferencesUpdate(
        categories={
            NotificationCategory.REMINDER: [
                ChannelPreference(type=Channel.IN_APP),
                ChannelPreference(type=Channel.SMS, priority=NotificationPriority.LOW),
            ],
        },
    ))

    assert [c.type for c in updated.categories[NotificationCategory.REMINDER]] == [Channel.IN_APP, Channel.SMS]
    assert updated.channels == DEFAULT_PREFERENCES.channels
    assert store.get(user_id) == updated
    assert len(stored_rows(db_session)) == 1


def test_valeur_illisible_retombe_sur_les_defauts(db_session):
    user_id = uuid.uuid4()
    db_session.add(SystemSetting(category=PREFERENCES_CATEGORY, key=str(user_id), value='{"channels": 42}'))
    db_session.commit()

    prefs = PreferenceStore(db_session).get(user_id)

    assert prefs == DEFAULT_PREFERENCES
    assert stored_rows(db_session)[0].value == '{"channels": 42}'


def test_mise_a_jour_conserve_les_autres_categories(db_session):
    user_id = uuid.uuid4()
    store = PreferenceStore(db_session)

    updated = store.update(user_id, NotificationPreferencesUpdate(
        categories={NotificationCategory.REMINDER: [ChannelPreference(type=Channel.IN_APP)]},
    ))

    assert updated.categories[NotificationCategory.VERIFICATION] == \
        DEFAULT_PREFERENCES.categories[NotificationCategory.VERIFICATION]


def test_heures_calmes_remplacees(db_session):
    user_id = uuid.uuid4()
    store = PreferenceStore(db_session)

    updated = store.update(user_id, NotificationPreferencesUpdate(
        quiet_hours=QuietHours(enabled=True, start="22:30", end="06:00", timezone="Africa/Accra"),
    ))

    assert updated.quiet_hours.start == "22:30"
    assert store.get(user_id).quiet_hours.timezone == "Africa/Accra"
