from notifications import DEFAULT, DESTRUCTIVE, Notifier


def test_notifications_reach_every_sink():
    seen = []
    notifier = Notifier([seen.append])
    notifier.add_sink(lambda note: seen.append(note.title))

    notifier.success("Ticket created", "Support ticket created successfully")
    notifier.error("Error creating ticket", "network down")

    assert [n.variant for n in notifier.history] == [DEFAULT, DESTRUCTIVE]
    assert seen[1] == "Ticket created"
    assert seen[2].description == "network down"


def test_each_mutation_emits_one_notification(equipment_store, notifier):
    record = equipment_store.create({"name": "Desktop-002", "type": "desktop"})
    equipment_store.update(record.id, {"status": "inativo"})
    equipment_store.fetch_all()
    equipment_store.delete(record.id)

    assert [n.title for n in notifier.history] == ["Equipment created", "Equipment updated", "Equipment deleted"]


def test_history_keeps_only_the_latest_notifications():
    notifier = Notifier(limit=3)

    for n in range(5):
        notifier.success(f"Ticket {n}", "created")

    assert [n.title for n in notifier.history] == ["Ticket 2", "Ticket 3", "Ticket 4"]


def test_sign_out_clears_notification_history(data, auth, notifier):
    data.attach(auth)
    auth.sign_in("admin", "admin")
    data.create_equipment({"name": "Desktop-003", "type": "desktop"})
    assert len(notifier.history) == 1

    auth.sign_out()

    assert not notifier.history
