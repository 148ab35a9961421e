"""Tests for the decoders package."""

import io
from unittest.mock import patch

import pytest

from decoders import DEFAULT_DECODER, Decoder, SilkDecoder, get_decoder, list_decoders


class TestRegistry:
    """Tests for looking decoders up by CLI name."""

    def test_default_decoder_listed(self):
        assert list_decoders() == ["silk"]
        assert DEFAULT_DECODER in list_decoders()

    def test_get_decoder(self):
        assert isinstance(get_decoder("silk"), SilkDecoder)

    def test_get_decoder_returns_fresh_instance(self):
        assert get_decoder("silk") is not get_decoder("silk")

    def test_unknown_decoder(self):
        with pytest.raises(ValueError, match="Unknown decoder: 'mp3'. Available decoders: silk"):
            get_decoder("mp3")


class TestDecoderBase:
    def test_cannot_instantiate_abstract(self):
        with pytest.raises(TypeError):
            Decoder()  # type: ignore[abstract]


class TestSilkDecoder:
    """Tests for the pysilk-backed decoder."""

    @patch("decoders.silk_decoder.pysilk")
    def test_decode_buffers_output(self, mock_pysilk):
        def fake_decode(src, dst, rate):
            dst.write(b"\x10\x00" * 4)

        mock_pysilk.decode.side_effect = fake_decode
        stream = io.BytesIO(b"#!SILK_V3...")

        pcm = SilkDecoder().decode(stream, 16000)

        assert pcm == b"\x10\x00" * 4
        args = mock_pysilk.decode.call_args[0]
        assert args[0] is stream
        assert args[2] == 16000

    @patch("decoders.silk_decoder.pysilk")
    def test_decode_propagates_errors(self, mock_pysilk):
        mock_pysilk.decode.side_effect = RuntimeError("invalid header")

        with pytest.raises(RuntimeError, match="invalid header"):
            SilkDecoder().decode(io.BytesIO(b"junk"), 24000)

    @patch("decoders.silk_decoder.pysilk")
    def test_rejects_unsupported_rate(self, mock_pysilk):
        with pytest.raises(ValueError, match="Unsupported SILK sample rate"):
            SilkDecoder().decode(io.BytesIO(b""), 22050)
        mock_pysilk.decode.assert_not_called()

    @pytest.mark.parametrize("rate", [8000, 12000, 16000, 24000, 32000, 44100, 48000])
    @patch("decoders.silk_decoder.pysilk")
    def test_accepts_silk_rates(self, mock_pysilk, rate):
        SilkDecoder().decode(io.BytesIO(b""), rate)
        assert mock_pysilk.decode.call_args[0][2] == rate
