from pathlib import Path

from zfsroot_installer.lib import refind


THEME_CONF = """\
icons_dir themes/refind-theme-regular/icons/128-48
#icons_dir themes/refind-theme-regular/icons/256-96
big_icon_size 128
#big_icon_size 256
small_icon_size 48
#small_icon_size 96
banner themes/refind-theme-regular/icons/128-48/bg.png
#banner themes/refind-theme-regular/icons/256-96/bg_dark.png
"""


def test_tune_theme_conf_picks_large_dark_icons():
    out = refind.tune_theme_conf(THEME_CONF).splitlines()
    assert out[0].startswith("#") and "128-48" in out[0]
    assert out[1] == "icons_dir themes/refind-theme-regular/icons/256-96"
    assert out[2].startswith("#big_icon_size 128")
    assert out[3] == "big_icon_size 256"
    assert out[5] == "small_icon_size 96"
    assert out[7] == "banner themes/refind-theme-regular/icons/256-96/bg_dark.png"


def test_install_theme_replaces_old_copies(shell, tmp_path, monkeypatch):
    monkeypatch.setattr(refind.shutil, "which", lambda name: "/usr/bin/git")

    def fake_clone(argv):
        dst = Path(argv[-1])
        (dst / "icons/256-96").mkdir(parents=True)
        (dst / "icons/256-96/os_ubuntu.png").write_bytes(b"png")
        (dst / "src").mkdir()
        (dst / ".git").mkdir()
        (dst / "install.sh").write_text("#!/bin/sh\n")
        (dst / "theme.conf").write_text(THEME_CONF)

    shell.on("git", "clone", effect=fake_clone)

    root = tmp_path / "target"
    old = root / refind.REFIND_DIR / "regular-theme"
    old.mkdir(parents=True)
    (old / "stale.png").write_bytes(b"old")

    refind.install_theme(str(root))

    theme = root / refind.REFIND_DIR / "themes" / refind.THEME_NAME
    assert (theme / "icons/256-96/os_ubuntu.png").exists()
    assert not (theme / "src").exists()
    assert not (theme / ".git").exists()
    assert not (theme / "install.sh").exists()
    assert "big_icon_size 256\n" in (theme / "theme.conf").read_text()
    assert not old.exists()


def test_menu_entries_chain_load_zbm(tmp_path):
    refind.add_menu_entries(str(tmp_path))
    conf = (tmp_path / refind.REFIND_DIR / "refind.conf").read_text()
    assert conf.count("loader /EFI/ZBM/VMLINUZ.EFI") == 2
    assert "zbm.skip" in conf and "zbm.show" in conf
    assert f"include themes/{refind.THEME_NAME}/theme.conf" in conf
