"""
Tests unitaires pour l'anti double-scan (ScanDebouncer, DebounceRegistry).
"""

from checker.services.debounce import DebounceRegistry, ScanDebouncer

NOW = 1_760_000_000_000


class TestScanDebouncer:
    def test_premier_scan_accepte(self):
        debouncer = ScanDebouncer(timeout_ms=5000)
        assert debouncer.is_double_scan("100123456", NOW) is False

    def test_meme_badge_dans_la_fenetre_rejete(self):
        debouncer = ScanDebouncer(timeout_ms=5000)
        debouncer.is_double_scan("100123456", NOW)

        assert debouncer.is_double_scan("100123456", NOW + 4999) is True

    def test_meme_badge_apres_la_fenetre_accepte(self):
        debouncer = ScanDebouncer(timeout_ms=5000)
        debouncer.is_double_scan("100123456", NOW)

        assert debouncer.is_double_scan("100123456", NOW + 5000) is False

    def test_autre_badge_accepte_immediatement(self):
        debouncer = ScanDebouncer(timeout_ms=5000)
        debouncer.is_double_scan("100123456", NOW)

        assert debouncer.is_double_scan("21000001", NOW + 100) is False

    def test_scan_rejete_ne_prolonge_pas_la_fenetre(self):
        debouncer = ScanDebouncer(timeout_ms=5000)
        debouncer.is_double_scan("100123456", NOW)
        debouncer.is_double_scan("100123456", NOW + 4000)

        assert debouncer.is_double_scan("100123456", NOW + 5000) is False

    def test_reset(self):
        debouncer = ScanDebouncer(timeout_ms=5000)
        debouncer.is_double_scan("100123456", NOW)
        debouncer.reset()

        assert debouncer.is_double_scan("100123456", NOW + 1) is False

    def test_delai_par_defaut_lu_dans_la_configuration(self):
        assert ScanDebouncer().timeout_ms == 5000


class TestDebounceRegistry:
    def test_bornes_independantes(self):
        registry = DebounceRegistry(timeout_ms=5000)
        registry.is_double_scan("A3F2", "100123456", NOW)

        assert registry.is_double_scan("B7C1", "100123456", NOW + 10) is False
        assert registry.is_double_scan("A3F2", "100123456", NOW + 20) is True

    def test_borne_inconnue_partage_l_etat_par_defaut(self):
        registry = DebounceRegistry(timeout_ms=5000)
        registry.is_double_scan(None, "100123456", NOW)

        assert registry.is_double_scan("", "100123456", NOW + 10) is True

    def test_for_device_reutilise_l_instance(self):
        registry = DebounceRegistry()
        assert registry.for_device("A3F2") is registry.for_device("A3F2")

    def test_clear(self):
        registry = DebounceRegistry(timeout_ms=5000)
        registry.is_double_scan("A3F2", "100123456", NOW)
        registry.clear()

        assert registry.is_double_scan("A3F2", "100123456", NOW + 10) is False
