from stockcycle.models import CountEntry, Inventory


def test_inventory_start_and_status(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["inventory", "start", "--responsible", "Maria Souza"])
    assert result.exit_code == 0, result.output
    assert "PASS Started inventory INV-" in result.output

    again = runner.invoke(args=["inventory", "start", "--responsible", "Outra"])
    assert again.exit_code != 0
    assert "already active" in again.output

    status = runner.invoke(args=["inventory", "status"])
    assert status.exit_code == 0
    assert "Maria Souza" in status.output
    assert "Stores:      0%" in status.output


def test_status_without_active_inventory(app, db_session):
    result = app.test_cli_runner().invoke(args=["inventory", "status"])
    assert result.exit_code == 0
    assert "No active inventory." in result.output


def test_seed_test_and_refresh_progress(app, db_session, inventory):
    runner = app.test_cli_runner()

    seeded = runner.invoke(args=["counts", "seed-test", "--category", "sector", "--items", "2"])
    assert seeded.exit_code == 0, seeded.output
    assert "across 8 origin(s)" in seeded.output
    assert db_session.query(CountEntry).filter_by(category="sector").count() == 16

    refreshed = runner.invoke(args=["inventory", "refresh-progress", str(inventory.id)])
    assert refreshed.exit_code == 0
    assert "sectors 100%" in refreshed.output
    assert db_session.get(Inventory, inventory.id).progress_sectors == 100


def test_refresh_progress_unknown_inventory(app, db_session):
    result = app.test_cli_runner().invoke(args=["inventory", "refresh-progress", "999"])
    assert result.exit_code != 0
    assert "not found" in result.output
