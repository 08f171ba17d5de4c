"""
Letter catalog: the closed registry of letter types.

Every letter type belongs to exactly one category and declares the payload
fields its form collects and its print template renders. The registry is
data; `validate_payload` is the only logic here.
"""
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Tuple

from rest_framework import serializers


class Category:
    GENERAL = 'layanan-umum'
    POPULATION = 'layanan-kependudukan'
    MARRIAGE = 'layanan-nikah'
    LAND = 'layanan-pertanahan'
    OTHER = 'layanan-lainnya'


CATEGORY_LABELS = {
    Category.GENERAL: 'Layanan Umum',
    Category.POPULATION: 'Layanan Kependudukan',
    Category.MARRIAGE: 'Layanan Nikah',
    Category.LAND: 'Layanan Pertanahan',
    Category.OTHER: 'Layanan Lainnya',
}

CATEGORY_CHOICES = list(CATEGORY_LABELS.items())

FIELD_KINDS = ('text', 'textarea', 'number', 'date', 'select')


@dataclass(frozen=True)
class PayloadField:
    name: str
    label: str
    kind: str = 'text'
    required: bool = True
    options: Tuple[str, ...] = ()

    def as_dict(self):
        data = {
            'name': self.name,
            'label': self.label,
            'kind': self.kind,
            'required': self.required,
        }
        if self.options:
            data['options'] = list(self.options)
        return data


@dataclass(frozen=True)
class LetterType:
    code: str
    label: str
    category: str
    fields: Tuple[PayloadField, ...] = field(default_factory=tuple)

    def field_map(self):
        return {f.name: f for f in self.fields}

    def as_dict(self):
        return {
            'code': self.code,
            'label': self.label,
            'category': self.category,
            'fields': [f.as_dict() for f in self.fields],
        }


def _f(name, label, kind='text', required=True, options=()):
    if kind not in FIELD_KINDS:
        raise ValueError(f'Unknown field kind "{kind}" for {name}')
    return PayloadField(name=name, label=label, kind=kind, required=required, options=tuple(options))


# Shared field groups
PURPOSE = _f('keperluan', 'Keperluan')
BUSINESS = (
    _f('nama_usaha', 'Nama Usaha'),
    _f('alamat_usaha', 'Alamat Usaha', 'textarea'),
)
MOVE_OUT = (
    _f('alamat_tujuan', 'Alamat Tujuan', 'textarea'),
    _f('alasan_pindah', 'Alasan Pindah'),
    _f('tanggal_pindah', 'Tanggal Pindah', 'date', required=False),
    _f('jumlah_pengikut', 'Jumlah Pengikut', 'number', required=False),
)
MOVE_IN = (
    _f('alamat_asal', 'Alamat Asal', 'textarea'),
    _f('tanggal_datang', 'Tanggal Datang', 'date'),
    _f('jumlah_pengikut', 'Jumlah Pengikut', 'number', required=False),
)
DATA_CHANGE = (
    _f('data_lama', 'Data Lama', 'textarea'),
    _f('data_baru', 'Data Baru', 'textarea'),
)
DECEASED = (
    _f('nama_almarhum', 'Nama Almarhum/Almarhumah'),
    _f('tanggal_meninggal', 'Tanggal Meninggal', 'date'),
    _f('tempat_meninggal', 'Tempat Meninggal'),
    _f('sebab_meninggal', 'Sebab Meninggal', required=False),
)
NEWBORN = (
    _f('nama_bayi', 'Nama Bayi'),
    _f('tanggal_lahir_bayi', 'Tanggal Lahir Bayi', 'date'),
)
MARRIAGE_INTRO = (
    _f('nama_pasangan', 'Nama Calon Pasangan'),
    _f('nik_pasangan', 'NIK Calon Pasangan', required=False),
    _f('tanggal_rencana_nikah', 'Tanggal Rencana Nikah', 'date', required=False),
    _f('tempat_nikah', 'Tempat Nikah', required=False),
)
LAND_PARCEL = (
    _f('lokasi_tanah', 'Lokasi Tanah', 'textarea'),
    _f('luas_tanah', 'Luas Tanah (m2)', 'number'),
)
STATEMENT = (
    _f('perihal', 'Perihal'),
    _f('isi_keterangan', 'Isi Keterangan', 'textarea'),
)


def _t(code, label, category, *fields):
    return LetterType(code=code, label=label, category=category, fields=tuple(fields))


_GENERAL = (
    _t('surat-keterangan-usaha', 'Surat Keterangan Usaha', Category.GENERAL,
       *BUSINESS, _f('jenis_usaha', 'Jenis Usaha'), _f('lama_usaha', 'Lama Usaha', required=False), PURPOSE),
    _t('surat-keterangan-tempat-usaha', 'Surat Keterangan Tempat Usaha', Category.GENERAL,
       *BUSINESS, _f('status_tempat', 'Status Tempat', 'select', options=('Milik Sendiri', 'Sewa')), PURPOSE),
    _t('surat-pengantar-barang', 'Surat Pengantar Barang', Category.GENERAL,
       _f('jenis_barang', 'Jenis Barang'), _f('jumlah', 'Jumlah'), _f('asal', 'Asal'), _f('tujuan', 'Tujuan'),
       _f('tanggal_pengiriman', 'Tanggal Pengiriman', 'date', required=False)),
    _t('surat-pengantar-ternak', 'Surat Pengantar Ternak', Category.GENERAL,
       _f('jenis_ternak', 'Jenis Ternak'), _f('jumlah_ternak', 'Jumlah Ternak', 'number'),
       _f('asal', 'Asal'), _f('tujuan', 'Tujuan')),
    _t('surat-tidak-mampu-sekolah', 'Surat Keterangan Tidak Mampu (Sekolah)', Category.GENERAL,
       _f('nama_anak', 'Nama Anak'), _f('nama_sekolah', 'Nama Sekolah'), _f('kelas', 'Kelas', required=False), PURPOSE),
    _t('surat-tidak-mampu-umum', 'Surat Keterangan Tidak Mampu (Umum)', Category.GENERAL,
       _f('penghasilan', 'Penghasilan per Bulan', 'number', required=False),
       _f('jumlah_tanggungan', 'Jumlah Tanggungan', 'number', required=False), PURPOSE),
    _t('surat-rumah-tangga-miskin', 'Surat Keterangan Rumah Tangga Miskin', Category.GENERAL,
       _f('jumlah_anggota_keluarga', 'Jumlah Anggota Keluarga', 'number'), PURPOSE),
    _t('surat-penghasilan-orang-tua', 'Surat Keterangan Penghasilan Orang Tua', Category.GENERAL,
       _f('nama_orang_tua', 'Nama Orang Tua'), _f('pekerjaan_orang_tua', 'Pekerjaan Orang Tua'),
       _f('penghasilan_per_bulan', 'Penghasilan per Bulan', 'number'), PURPOSE),
    _t('izin-keramaian-pesta', 'Surat Izin Keramaian', Category.GENERAL,
       _f('jenis_acara', 'Jenis Acara'), _f('tanggal_acara', 'Tanggal Acara', 'date'),
       _f('tempat_acara', 'Tempat Acara'), _f('hiburan', 'Hiburan', required=False),
       _f('jumlah_undangan', 'Jumlah Undangan', 'number', required=False)),
    _t('surat-pengantar-skck', 'Surat Pengantar SKCK', Category.GENERAL, PURPOSE),
    _t('surat-ahli-waris', 'Surat Keterangan Ahli Waris', Category.GENERAL,
       _f('nama_pewaris', 'Nama Pewaris'), _f('tanggal_meninggal', 'Tanggal Meninggal Pewaris', 'date'),
       _f('daftar_ahli_waris', 'Daftar Ahli Waris', 'textarea')),
    _t('surat-bepergian', 'Surat Keterangan Bepergian', Category.GENERAL,
       _f('tujuan', 'Tujuan'), _f('tanggal_berangkat', 'Tanggal Berangkat', 'date'),
       _f('lama_bepergian', 'Lama Bepergian', required=False), PURPOSE),
    _t('surat-tidak-berada-ditempat', 'Surat Keterangan Tidak Berada di Tempat', Category.GENERAL,
       _f('alasan', 'Alasan'), _f('tanggal_mulai', 'Tanggal Mulai', 'date'),
       _f('tanggal_selesai', 'Tanggal Selesai', 'date', required=False)),
    _t('surat-beda-identitas', 'Surat Keterangan Beda Identitas', Category.GENERAL,
       _f('dokumen_pertama', 'Dokumen Pertama'), _f('data_pertama', 'Data pada Dokumen Pertama'),
       _f('dokumen_kedua', 'Dokumen Kedua'), _f('data_kedua', 'Data pada Dokumen Kedua'), PURPOSE),
    _t('surat-keterangan-domisili', 'Surat Keterangan Domisili', Category.GENERAL,
       _f('alamat_lengkap', 'Alamat Lengkap', 'textarea'), _f('rt', 'RT'), _f('rw', 'RW'),
       _f('dusun', 'Dusun', required=False), _f('lama_tinggal', 'Lama Tinggal'), PURPOSE),
)

_POPULATION = (
    _t('formulir-kartu-keluarga', 'Formulir Kartu Keluarga', Category.POPULATION,
       _f('nomor_kk', 'Nomor KK', required=False), _f('alasan', 'Alasan Permohonan')),
    _t('formulir-peristiwa-kependudukan', 'Formulir Pelaporan Peristiwa Kependudukan', Category.POPULATION,
       _f('jenis_peristiwa', 'Jenis Peristiwa'), _f('tanggal_peristiwa', 'Tanggal Peristiwa', 'date')),
    _t('surat-tidak-memiliki-dokumen', 'Surat Keterangan Tidak Memiliki Dokumen Kependudukan', Category.POPULATION,
       _f('jenis_dokumen', 'Jenis Dokumen'), PURPOSE),
    _t('surat-perubahan-data-kependudukan', 'Surat Keterangan Perubahan Data Kependudukan', Category.POPULATION,
       *DATA_CHANGE, _f('alasan', 'Alasan Perubahan')),
    _t('formulir-biodata-perubahan-wni', 'Formulir Biodata Perubahan WNI', Category.POPULATION, *DATA_CHANGE),
    _t('surat-kuasa-administrasi', 'Surat Kuasa Administrasi Kependudukan', Category.POPULATION,
       _f('nama_penerima_kuasa', 'Nama Penerima Kuasa'), _f('nik_penerima_kuasa', 'NIK Penerima Kuasa'),
       _f('urusan', 'Urusan yang Dikuasakan', 'textarea')),
    _t('formulir-kk-baru-wni', 'Formulir Permohonan KK Baru WNI', Category.POPULATION,
       _f('alasan', 'Alasan Permohonan'),
       _f('jumlah_anggota_keluarga', 'Jumlah Anggota Keluarga', 'number', required=False)),
    _t('formulir-perubahan-kk-wni', 'Formulir Perubahan KK WNI', Category.POPULATION,
       _f('nomor_kk', 'Nomor KK'), _f('alasan', 'Alasan Perubahan')),
    _t('formulir-permohonan-ktp', 'Formulir Permohonan KTP', Category.POPULATION,
       _f('jenis_permohonan', 'Jenis Permohonan', 'select', options=('Baru', 'Perpanjangan', 'Penggantian')),
       _f('nomor_kk', 'Nomor KK', required=False)),
    _t('surat-hilang-kartu-keluarga', 'Surat Keterangan Kehilangan Kartu Keluarga', Category.POPULATION,
       _f('nomor_kk', 'Nomor KK'), _f('tanggal_hilang', 'Tanggal Hilang', 'date', required=False),
       _f('lokasi_hilang', 'Lokasi Hilang', required=False)),
    _t('surat-keterangan-pindah', 'Surat Keterangan Pindah', Category.POPULATION, *MOVE_OUT),
    _t('formulir-perpindahan-penduduk', 'Formulir Perpindahan Penduduk', Category.POPULATION, *MOVE_OUT),
    _t('surat-pindah-datang-satu-desa', 'Surat Keterangan Pindah Datang Satu Desa', Category.POPULATION, *MOVE_IN),
    _t('surat-pindah-antar-desa', 'Surat Keterangan Pindah Antar Desa', Category.POPULATION, *MOVE_OUT),
    _t('surat-pindah-datang-antar-desa', 'Surat Keterangan Pindah Datang Antar Desa', Category.POPULATION, *MOVE_IN),
    _t('surat-pindah-antar-kecamatan', 'Surat Keterangan Pindah Antar Kecamatan', Category.POPULATION, *MOVE_OUT),
    _t('surat-pindah-datang-antar-kecamatan', 'Surat Keterangan Pindah Datang Antar Kecamatan',
       Category.POPULATION, *MOVE_IN),
    _t('surat-pengantar-pindah', 'Surat Pengantar Pindah', Category.POPULATION, *MOVE_OUT),
    _t('surat-pengantar-pindah-datang', 'Surat Pengantar Pindah Datang', Category.POPULATION, *MOVE_IN),
    _t('formulir-pindah-antar-provinsi', 'Formulir Pindah Antar Provinsi', Category.POPULATION, *MOVE_OUT),
    _t('formulir-pindah-datang-antar-provinsi', 'Formulir Pindah Datang Antar Provinsi',
       Category.POPULATION, *MOVE_IN),
    _t('surat-keterangan-kelahiran', 'Surat Keterangan Kelahiran', Category.POPULATION,
       *NEWBORN, _f('jenis_kelamin_bayi', 'Jenis Kelamin Bayi', 'select', options=('Laki-laki', 'Perempuan')),
       _f('tempat_lahir_bayi', 'Tempat Lahir Bayi'), _f('nama_ayah', 'Nama Ayah'), _f('nama_ibu', 'Nama Ibu')),
    _t('sptjm-kebenaran-kelahiran', 'SPTJM Kebenaran Data Kelahiran', Category.POPULATION,
       *NEWBORN, _f('nama_ayah', 'Nama Ayah', required=False), _f('nama_ibu', 'Nama Ibu', required=False)),
    _t('sptjm-pasangan-suami-istri', 'SPTJM Kebenaran Pasangan Suami Istri', Category.POPULATION,
       _f('nama_pasangan', 'Nama Pasangan'), _f('tanggal_nikah', 'Tanggal Nikah', 'date', required=False)),
    _t('surat-belum-memiliki-akta-kelahiran', 'Surat Keterangan Belum Memiliki Akta Kelahiran',
       Category.POPULATION, PURPOSE),
    _t('surat-keterangan-kematian', 'Surat Keterangan Kematian', Category.POPULATION, *DECEASED),
    _t('surat-kematian', 'Surat Kematian', Category.POPULATION, *DECEASED),
    _t('surat-keterangan-penguburan', 'Surat Keterangan Penguburan', Category.POPULATION,
       _f('nama_almarhum', 'Nama Almarhum/Almarhumah'), _f('tanggal_pemakaman', 'Tanggal Pemakaman', 'date'),
       _f('tempat_pemakaman', 'Tempat Pemakaman')),
)

_MARRIAGE = (
    _t('pengantar-nikah-n1', 'Surat Pengantar Nikah (N1)', Category.MARRIAGE, *MARRIAGE_INTRO),
    _t('pengantar-nikah-n2', 'Surat Permohonan Kehendak Nikah (N2)', Category.MARRIAGE, *MARRIAGE_INTRO),
    _t('pengantar-nikah-n3', 'Surat Persetujuan Mempelai (N3)', Category.MARRIAGE, *MARRIAGE_INTRO),
    _t('pengantar-nikah-n4', 'Surat Izin Orang Tua (N4)', Category.MARRIAGE,
       *MARRIAGE_INTRO, _f('nama_orang_tua', 'Nama Orang Tua/Wali')),
    _t('pengantar-nikah-n5', 'Surat Izin Orang Tua/Wali (N5)', Category.MARRIAGE,
       *MARRIAGE_INTRO, _f('nama_orang_tua', 'Nama Orang Tua/Wali')),
    _t('pengantar-nikah-n6', 'Surat Keterangan Kematian Suami/Istri (N6)', Category.MARRIAGE,
       _f('nama_pasangan_terdahulu', 'Nama Suami/Istri Terdahulu'),
       _f('tanggal_meninggal', 'Tanggal Meninggal', 'date')),
    _t('surat-pernah-nikah', 'Surat Keterangan Pernah Nikah', Category.MARRIAGE,
       _f('nama_pasangan', 'Nama Pasangan'), _f('tanggal_nikah', 'Tanggal Nikah', 'date')),
    _t('surat-belum-pernah-nikah', 'Surat Keterangan Belum Pernah Nikah', Category.MARRIAGE, PURPOSE),
    _t('surat-duda-janda', 'Surat Keterangan Duda/Janda', Category.MARRIAGE,
       _f('status', 'Status', 'select', options=('Duda', 'Janda')),
       _f('nama_pasangan_terdahulu', 'Nama Pasangan Terdahulu'),
       _f('sebab', 'Sebab', 'select', required=False, options=('Cerai Hidup', 'Cerai Mati'))),
)

_LAND = (
    _t('surat-pencocokan-sporadik', 'Surat Pencocokan Sporadik', Category.LAND,
       *LAND_PARCEL, _f('nomor_persil', 'Nomor Persil', required=False)),
    _t('sporadik', 'Surat Pernyataan Penguasaan Fisik Bidang Tanah (Sporadik)', Category.LAND,
       *LAND_PARCEL, _f('batas_tanah', 'Batas-batas Tanah', 'textarea'), _f('asal_perolehan', 'Asal Perolehan')),
    _t('surat-kepemilikan-tanah', 'Surat Keterangan Kepemilikan Tanah', Category.LAND,
       *LAND_PARCEL, _f('nomor_persil', 'Nomor Persil', required=False)),
    _t('surat-jaminan-rumah', 'Surat Keterangan Jaminan Rumah', Category.LAND,
       _f('alamat_rumah', 'Alamat Rumah', 'textarea'), _f('nama_penjamin', 'Nama Penjamin', required=False)),
    _t('keterangan-ahli-waris-tanah', 'Surat Keterangan Ahli Waris Tanah', Category.LAND,
       _f('nama_pewaris', 'Nama Pewaris'), *LAND_PARCEL, _f('daftar_ahli_waris', 'Daftar Ahli Waris', 'textarea')),
    _t('keterangan-desa', 'Surat Keterangan Desa', Category.LAND, *STATEMENT),
)

_OTHER = (
    _t('surat-keterangan-lainnya', 'Surat Keterangan Lainnya', Category.OTHER, *STATEMENT, PURPOSE),
)

LETTER_TYPES: Dict[str, LetterType] = {
    t.code: t for t in _GENERAL + _POPULATION + _MARRIAGE + _LAND + _OTHER
}

LETTER_TYPE_CHOICES = [(t.code, t.label) for t in LETTER_TYPES.values()]


def get_letter_type(code) -> Optional[LetterType]:
    return LETTER_TYPES.get(code)


def types_in_category(category):
    return [t for t in LETTER_TYPES.values() if t.category == category]


def as_catalog():
    """Categories with their letter types and fields, for form rendering."""
    return [
        {
            'code': code,
            'label': label,
            'letter_types': [t.as_dict() for t in types_in_category(code)],
        }
        for code, label in CATEGORY_CHOICES
    ]


def check_category(letter_type, category):
    """Raise ValidationError unless `letter_type` is known and belongs to `category`."""
    entry = get_letter_type(letter_type)
    if entry is None:
        raise serializers.ValidationError({'letter_type': f'Unknown letter type "{letter_type}".'})
    if category not in CATEGORY_LABELS:
        raise serializers.ValidationError({'category': f'Unknown category "{category}".'})
    if entry.category != category:
        raise serializers.ValidationError({
            'category': f'Letter type "{letter_type}" belongs to "{entry.category}", not "{category}".'
        })
    return entry


def _coerce(definition, value):
    if definition.kind in ('text', 'textarea'):
        if not isinstance(value, str):
            raise ValueError('Must be a string.')
        return value.strip()
    if definition.kind == 'number':
        if isinstance(value, bool):
            raise ValueError('Must be a number.')
        if isinstance(value, int):
            return value
        try:
            number = float(value if isinstance(value, float) else str(value).strip())
        except ValueError:
            raise ValueError('Must be a number.')
        if not math.isfinite(number):
            raise ValueError('Must be a finite number.')
        return int(number) if number.is_integer() else number
    if definition.kind == 'date':
        try:
            return date.fromisoformat(str(value).strip()[:10]).isoformat()
        except ValueError:
            raise ValueError('Must be a date in YYYY-MM-DD format.')
    if definition.kind == 'select':
        if value not in definition.options:
            raise ValueError(f'Must be one of: {", ".join(definition.options)}.')
        return value
    raise ValueError(f'Unsupported field kind "{definition.kind}".')


def validate_payload(letter_type, payload):
    """
    Validate and normalize a payload against the fields of `letter_type`.

    Unknown keys are rejected; required fields must be non-blank; typed
    fields are coerced (numbers to int/float, dates to ISO strings).
    Returns the cleaned payload.
    """
    entry = get_letter_type(letter_type)
    if entry is None:
        raise serializers.ValidationError({'letter_type': f'Unknown letter type "{letter_type}".'})
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise serializers.ValidationError({'payload': 'Must be an object.'})

    definitions = entry.field_map()
    errors = {}
    cleaned = {}

    for key in payload:
        if key not in definitions:
            errors[key] = ['Unknown field for this letter type.']

    for name, definition in definitions.items():
        value = payload.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            if definition.required:
                errors[name] = ['This field is required.']
            continue
        try:
            cleaned[name] = _coerce(definition, value)
        except ValueError as e:
            errors[name] = [str(e)]

    if errors:
        raise serializers.ValidationError({'payload': errors})
    return cleaned
