"""Canvas abstraction for the dashboard - allows swapping real hardware with test backends."""
from abc import ABC, abstractmethod
from typing import List, Tuple

from PIL import Image, ImageDraw, ImageFont


class MatrixCanvas(ABC):
    """Abstract canvas interface for drawing the dashboard."""

    @property
    @abstractmethod
    def width(self) -> int:
        """Get canvas width in pixels."""
        pass

    @property
    @abstractmethod
    def height(self) -> int:
        """Get canvas height in pixels."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear the entire canvas (set all pixels to black)."""
        pass

    @abstractmethod
    def set_pixel(self, x: int, y: int, r: int, g: int, b: int) -> None:
        """
        Set a single pixel to the given RGB color.

        Args:
            x: X coordinate (0-based)
            y: Y coordinate (0-based)
            r: Red component (0-255)
            g: Green component (0-255)
            b: Blue component (0-255)
        """
        pass

    @abstractmethod
    def fill(self, r: int, g: int, b: int) -> None:
        """Fill the entire canvas with the given RGB color."""
        pass

    def fill_rect(self, x: int, y: int, w: int, h: int, r: int, g: int, b: int) -> None:
        """Fill a rectangle, clipped to the canvas."""
        for py in range(max(0, y), min(self.height, y + h)):
            for px in range(max(0, x), min(self.width, x + w)):
                self.set_pixel(px, py, r, g, b)

    @abstractmethod
    def draw_text(self, x: int, y: int, text: str, r: int, g: int, b: int, font_size: int = 8) -> None:
        """Draw text with its top-left corner at (x, y)."""
        pass


class RealMatrixCanvas(MatrixCanvas):
    """Canvas implementation using the actual RGB matrix hardware."""

    def __init__(self, matrix, font, graphics_module):
        """
        Initialize with an RGBMatrix instance.

        Args:
            matrix: RGBMatrix instance from rgbmatrix library
            font: Loaded rgbmatrix.graphics.Font (BDF fonts have one fixed size)
            graphics_module: rgbmatrix.graphics module
        """
        self._matrix = matrix
        self._font = font
        self._graphics = graphics_module

    @property
    def width(self) -> int:
        return self._matrix.width

    @property
    def height(self) -> int:
        return self._matrix.height

    def clear(self) -> None:
        self._matrix.Clear()

    def set_pixel(self, x: int, y: int, r: int, g: int, b: int) -> None:
        self._matrix.SetPixel(x, y, r, g, b)

    def fill(self, r: int, g: int, b: int) -> None:
        self._matrix.Fill(r, g, b)

    def draw_text(self, x: int, y: int, text: str, r: int, g: int, b: int, font_size: int = 8) -> None:
        color = self._graphics.Color(r, g, b)
        # DrawText positions by baseline; callers position by top edge
        self._graphics.DrawText(self._matrix, self._font, x, y + self._font.baseline, color, text)


class FakeMatrixCanvas(MatrixCanvas):
    """
    Fake canvas implementation for testing - stores pixels in memory.

    Text is not rasterised; draw_text records (x, y, text) in ``texts``
    so tests can assert on what was written.
    """

    def __init__(self, width: int = 128, height: int = 64):
        self._width = width
        self._height = height
        self._pixels = [[(0, 0, 0) for _ in range(width)] for _ in range(height)]
        self.texts: List[Tuple[int, int, str]] = []

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def clear(self) -> None:
        self._pixels = [[(0, 0, 0) for _ in range(self._width)]
                        for _ in range(self._height)]
        self.texts = []

    def set_pixel(self, x: int, y: int, r: int, g: int, b: int) -> None:
        if 0 <= x < self._width and 0 <= y < self._height:
            self._pixels[y][x] = (r, g, b)

    def fill(self, r: int, g: int, b: int) -> None:
        self._pixels = [[(r, g, b) for _ in range(self._width)]
                        for _ in range(self._height)]

    def get_pixel(self, x: int, y: int) -> Tuple[int, int, int]:
        """Get pixel color at given coordinates (black when out of bounds)."""
        if 0 <= x < self._width and 0 <= y < self._height:
            return self._pixels[y][x]
        return (0, 0, 0)

    def draw_text(self, x: int, y: int, text: str, r: int, g: int, b: int, font_size: int = 8) -> None:
        self.texts.append((x, y, text))

    def text_lines(self) -> List[str]:
        """All text drawn since the last clear, in draw order."""
        return [text for _, _, text in self.texts]


class PILCanvas(MatrixCanvas):
    """
    PIL-based canvas for rendering to PNG images.

    Useful for running the dashboard without hardware.
    """

    def __init__(self, width: int = 480, height: int = 270, scale: int = 2):
        """
        Initialize PIL canvas.

        Args:
            width: Canvas width in pixels
            height: Canvas height in pixels
            scale: Scale factor for output image (makes it bigger for viewing)
        """
        self._width = width
        self._height = height
        self._scale = scale
        self._fonts = {}
        self._image = Image.new("RGB", (width, height), (0, 0, 0))
        self._draw = ImageDraw.Draw(self._image)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def clear(self) -> None:
        self.fill(0, 0, 0)

    def set_pixel(self, x: int, y: int, r: int, g: int, b: int) -> None:
        if 0 <= x < self._width and 0 <= y < self._height:
            self._image.putpixel((x, y), (r, g, b))

    def fill(self, r: int, g: int, b: int) -> None:
        self._image = Image.new("RGB", (self._width, self._height), (r, g, b))
        self._draw = ImageDraw.Draw(self._image)

    def fill_rect(self, x: int, y: int, w: int, h: int, r: int, g: int, b: int) -> None:
        if w <= 0 or h <= 0:
            return
        self._draw.rectangle([x, y, x + w - 1, y + h - 1], fill=(r, g, b))

    def draw_text(self, x: int, y: int, text: str, r: int, g: int, b: int, font_size: int = 10) -> None:
        font = self._fonts.get(font_size)
        if font is None:
            font = ImageFont.load_default(size=font_size)
            self._fonts[font_size] = font
        self._draw.text((x, y), text, fill=(r, g, b), font=font)

    def save(self, filename: str) -> None:
        """
        Save canvas to PNG file (scaled up for visibility).

        Args:
            filename: Output filename (e.g., "dashboard.png")
        """
        if self._scale > 1:
            scaled = self._image.resize(
                (self._width * self._scale, self._height * self._scale),
                Image.NEAREST
            )
            scaled.save(filename)
        else:
            self._image.save(filename)

    def get_image(self):
        """Get the PIL Image object."""
        return self._image
