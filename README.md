# iwmstats

Tools for working with the `mpdata` player statistics file of Call of Duty 4.

The file is 0x211C bytes long and comes in two forms:

* **encrypted** (`iwm0` signature), which is what the stock game writes. It is
  locked to the CD-key of the installation that produced it.
* **decrypted** (`ice0` signature), a plain layout that needs no key.

`iwmstats` converts between the two forms and reads or changes single stat
values. Every write recomputes the stats checksum.

## Installation

```
pip install .
```

The package has no runtime dependencies.

## Command line

The `iwmstats` command takes a mode and an input file:

```
iwmstats --mode decrypt --input mpdata --output mpdata.dec --key <cd-key>
iwmstats --mode encrypt --input mpdata.dec --output mpdata --key <cd-key>
iwmstats --mode stats --input mpdata --index 2301 --key <cd-key>
iwmstats --mode stats --input mpdata --index 150 --set 1 --key <cd-key>
```

`python -m iwmstats.cli` runs the same command.

Options:

| Option | Meaning |
| --- | --- |
| `-m`, `--mode` | `encrypt`, `decrypt` or `stats` |
| `-i`, `--input` | input file, `mpdata` by default |
| `-o`, `--output` | output file. When omitted, the input file is overwritten |
| `-k`, `--key` | CD-key. Needed to read or write an encrypted file |
| `-n`, `--index` | stat index, 0–3497. Required in `stats` mode |
| `-s`, `--set` | value to store at the index |

You can give the CD-key with or without dashes and in any case. Only its ASCII
letters and digits count, and a non-empty key needs at least 16 of them.

When you give no key:

* On Windows, the tool reads the `codkey` value of the game's registry entry.
* Elsewhere, it carries on with an empty key. An empty key is enough for
  decrypted files.

The input file is always read and checked first. Then the tool does one of
the following:

* `encrypt` writes the output in the `iwm0` form.
* `decrypt` writes the output in the `ice0` form.
* `stats` without `--set` prints the value and writes nothing.
* `stats` with `--set` writes the file back in the same form it was read in.

The command exits with status 1 when a key, file or stat operation fails. In
that case it prints a message ending in the error name, for example
`InvalidIWMHash`.

Malformed options, or a missing `--mode` or `--index`, print an `Error:` line
and exit with status 0. Run `iwmstats` with no arguments to see the help
text.

## Stats

* Indices 0–1999 are single bytes, with values 0–255.
* Indices 2000–3497 are 32-bit integers. They read back as signed values.
  Writing accepts anything from -2147483648 to 4294967295.

## Python

```python
import os

from iwmstats.iwm import IWM, EncState, IWMError

try:
    iwm = IWM(os.environ.get("COD4_CD_KEY", ""))
    iwm.read_file("mpdata")
    print(iwm.get_stat(2301))
    iwm.set_stat(150, 1)
    iwm.write_file("mpdata.new", EncState.DEC)
except IWMError as exc:
    print(f"failed: {exc.code.name}")
```

### `iwmstats.iwm`

* **`IWM`** holds one file in memory.
  * `set_cd_key` stores a normalized key.
  * `read_file` and `from_bytes` parse a file, decrypting it when needed. Both
    check the hash and the stats checksum.
  * `to_bytes` and `write_file` produce either form. Encrypted output uses the
    current time as its salt.
  * `get_stat` and `set_stat` read and change stats.
  * The `cd_key`, `enc_state` and `loaded` properties report the current
    state.
* **`EncState`** has the members `ENC` (`iwm0`) and `DEC` (`ice0`).
* **`IWMError`** is raised on every failure. Its `code` attribute is an
  `ErrorCode` member.

### `iwmstats.crypto`

This module works on raw file bytes:

* `derive_key`
* `salted_md4`
* `encrypt_words` and `decrypt_words`, the block cipher
* `encrypt_iwm` and `decrypt_iwm`. These raise `ValueError` on bad input.
* `IWMLayout`, which gives the offsets and sizes within the file

### `iwmstats.md4`

This module provides:

* the `MD4` hash class, with a hashlib-like interface
* `md4`
* `block_checksum`
* `block_full_checksum`
* `block_checksum_key32`, a CRC-32 used for the stats checksum

## Limitations

* Only Windows can supply a CD-key automatically. On other systems, pass it
  with `--key`.
* The game path stored in the file is carried along unchanged. It is never
  compared against anything.

## Tests

```
pip install .[test]
pytest
```