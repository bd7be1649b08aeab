# puspita/tests/conftest.py
# Pytest fixtures for testing the PUSPITA report engine.

import pytest
import json
import sys
import os
from typing import List, Dict, Any

# --- Path Setup for Imports ---
# Add the 'puspita' directory (parent of 'tests', contains 'config' and 'utils') to sys.path
_current_conftest_dir = os.path.dirname(os.path.abspath(__file__))
_project_app_dir = os.path.abspath(os.path.join(_current_conftest_dir, os.pardir))

if _project_app_dir not in sys.path:
    sys.path.insert(0, _project_app_dir)

# --- Critical Project Module Imports ---
try:
    from config import app_config
    from utils.core_data_processing import load_participants
except ImportError as e:
    print(f"FATAL ERROR in conftest.py: Could not import core project modules. Tests will not run correctly.")
    print(f"PYTHONPATH currently is: {sys.path}")
    print(f"Attempted to add: {_project_app_dir}")
    print(f"Error details: {e}")
    raise


# --- Fixture for Sample Participants ---
def _sample_participants() -> List[Dict[str, Any]]:
    return [
        {
            "id": "P001", "nama": "Budi Santoso", "nik": "3328010101230001",
            "kategori": "balita", "jenis_kelamin": "Laki-laki", "tanggal_lahir": "2023-08-15",
            "alamat": "Kupu", "rt": "001", "rw": "002", "nama_posyandu": "Saadiyah 1", "nama_ibu": "Sri",
            "tanggal_pengukuran": "2024-02-10", "tanggal_pelayanan": "2024-02-10",
            "berat_badan": 7.2, "tinggi_badan": 65.0,
            "status_bb_u": "Berat badan kurang", "status_tb_u": "Pendek (stunted)",
            "status_bb_tb": "Gizi baik (normal)", "status_kenaikan_berat": "Tidak Naik",
            "imunisasi": ["BCG", "Polio 1"], "obatCacing": False,
            "riwayatPengukuran": [
                {"tanggal_pengukuran": "2024-02-10", "berat_badan": 7.2, "tinggi_badan": 65.0, "status_kenaikan_berat": "Tidak Naik",
                 "imunisasi": ["BCG", "Polio 1"], "catatan_pengukuran": "Kontrol gizi"},
                {"tanggal_pengukuran": "2024-01-12", "berat_badan": 7.2, "tinggi_badan": 64.0, "status_kenaikan_berat": "Tidak Naik"},
                {"tanggal_pengukuran": "2023-12-10", "berat_badan": 7.1, "tinggi_badan": 63.0, "status_kenaikan_berat": "Naik",
                 "sudahPKAT": True, "gigi_caries": False},
            ],
            "riwayatKunjunganRumah": [],
        },
        {
            "id": "P002", "nama": "Siti Aminah", "nik": "3328010501220002",
            "kategori": "balita", "jenis_kelamin": "Perempuan", "tanggal_lahir": "2022-01-05",
            "alamat": "Kupu", "nama_posyandu": "Saadiyah 1",
            "tanggal_pengukuran": "2024-02-12", "tanggal_pelayanan": "2024-02-12",
            "berat_badan": 11.0, "tinggi_badan": 86.5,
            "status_bb_u": "Berat badan normal", "status_tb_u": "Normal",
            "status_bb_tb": "Berisiko gizi lebih", "status_kenaikan_berat": "Naik",
            "riwayatPengukuran": [
                {"tanggal_pengukuran": "2024-02-12", "berat_badan": 11.0, "status_kenaikan_berat": "Naik"},
                {"tanggal_pengukuran": "2024-01-10", "berat_badan": 10.7, "status_kenaikan_berat": "Tidak Naik"},
            ],
            "riwayatKunjunganRumah": [],
        },
        {
            "id": "P003", "nama": "Ahmad Fauzi", "nik": "3328010105800003",
            "kategori": "dewasa", "jenis_kelamin": "Laki-laki", "tanggal_lahir": "1980-05-01",
            "alamat": "Kupu", "nama_posyandu": "Saadiyah 1", "tanggal_pelayanan": "2024-02-15",
            "tensi": "145/92", "kesimpulan_tensi": "Hipertensi Tahap 1",
            "gds": 120, "kesimpulan_gds": "Normal",
            "status_bmi": 31.2, "status_kategori_bmi": "Obesitas",
            "skriningMerokok": {"merokok": True, "terpapar": False},
            "riwayatPengukuran": [],
            "riwayatKunjunganRumah": [],
        },
        {
            "id": "P004", "nama": "Dewi Lestari", "nik": "3328010303550004",
            "kategori": "lansia", "jenis_kelamin": "Perempuan", "tanggal_lahir": "1955-03-03",
            "alamat": "Kupu", "nama_posyandu": "Saadiyah 1", "tanggal_pelayanan": "2024-02-15",
            "tensi": "165/101", "kesimpulan_tensi": "Hipertensi Tahap 2",
            "gds": 230, "kesimpulan_gds": "Tinggi (Diabetes)",
            "skriningMerokok": {"merokok": False},
            "riwayatPengukuran": [],
            "riwayatKunjunganRumah": [],
        },
        {
            "id": "P005", "nama": "Rina Wati", "nik": "3328010106060005",
            "kategori": "ibu-hamil", "jenis_kelamin": "Perempuan", "tanggal_lahir": "2006-06-01",
            "alamat": "Lawatan", "nama_posyandu": "Melati", "status_hamil": True,
            "tanggal_pengukuran": "2024-01-20", "tanggal_pelayanan": "2024-01-20",
            "lila": 22.0, "status_lila": "KEK (Kurang Energi Kronis)",
            "pemeriksaanHB": 10.2, "kesimpulan_hb": "Anemia", "kesimpulan_tensi": "Normal",
            "riwayatPengukuran": [
                {"tanggal_pengukuran": "2024-01-20", "berat_badan": 48.0, "lila": 22.0},
            ],
            "riwayatKunjunganRumah": [{"tanggal_kunjungan": "2023-11-05", "catatan": "Kunjungan awal"}],
        },
        {
            "id": "P006", "nama": "Joko <Kecil>", "nik": "3328010000000006",
            "kategori": "balita", "jenis_kelamin": "Laki-laki", "tanggal_lahir": None,
            "alamat": "Lawatan", "nama_posyandu": "Melati",
            "tanggal_pengukuran": "2024-01-18",
            "status_tb_u": "Sangat pendek (severely stunted)", "status_bb_tb": "Gizi buruk (severely wasted)",
            "status_kenaikan_berat": "Baru Ditimbang",
            "phbsClassification": "PHBS Madya", "phbsScore": 9,
            "surveiKeluarga": {"nomorKartuKeluarga": "3328011234567890", "sumberAirUtama": "PAMSIMAS", "jentikNyamuk": False},
            "riwayatPengukuran": [
                {"tanggal_pengukuran": "2024-01-18", "berat_badan": 9.0, "status_kenaikan_berat": "Baru Ditimbang"},
            ],
            "riwayatKunjunganRumah": [],
        },
    ]


@pytest.fixture(scope="session")
def sample_participants_main() -> List[Dict[str, Any]]:
    """
    Six participants over two posyandu (Saadiyah 1 in Kupu, Melati in Lawatan):
    two toddlers and two PTM adults in Saadiyah 1, a pregnant teenager and an
    undated toddler in Melati. Tests must not mutate these dicts.
    """
    return _sample_participants()


@pytest.fixture
def fresh_participants() -> List[Dict[str, Any]]:
    """An independent copy for tests that check inputs stay untouched."""
    return _sample_participants()


@pytest.fixture
def participant_by_name(sample_participants_main):
    def _lookup(name_prefix: str) -> Dict[str, Any]:
        return next(p for p in sample_participants_main if p["nama"].startswith(name_prefix))
    return _lookup


@pytest.fixture
def participants_json_file(tmp_path) -> str:
    file_path = tmp_path / "participants.json"
    file_path.write_text(json.dumps(_sample_participants()), encoding="utf-8")
    return str(file_path)
